"""Connectivity checks against the local proxy endpoint."""

from typing import Callable, List, Optional

from pgproxyctl.constants import DETAIL_DELIMITER, DETAIL_FIELD_COUNT
from pgproxyctl.errors import ConnectionFailed, ProxyError
from pgproxyctl.errors_catalog import actionable_error
from pgproxyctl.models import ConnectionReport, ProxyConfiguration, TestResult

LIVENESS_QUERY = "SELECT version();"
DETAIL_QUERY = """
    SELECT
        current_database() || '|' ||
        current_user || '|' ||
        inet_server_addr() || '|' ||
        inet_server_port() || '|' ||
        current_timestamp
"""


def first_line(output: Optional[str]) -> str:
    for line in (output or "").splitlines():
        if line.strip():
            return line.strip()
    return ""


def parse_detail_row(row: str) -> Optional[TestResult]:
    """Split a ``db|user|addr|port|timestamp`` row; ``None`` when fields are missing."""
    fields = row.split(DETAIL_DELIMITER, DETAIL_FIELD_COUNT - 1)
    if len(fields) < DETAIL_FIELD_COUNT:
        return None
    database_name, user_name, server_address, server_port, server_timestamp = (
        field.strip() for field in fields
    )
    return TestResult(
        database_name=database_name,
        user_name=user_name,
        server_address=server_address,
        server_port=server_port,
        server_timestamp=server_timestamp,
    )


class ConnectionTesterService:
    """Runs the liveness and detail queries through psql."""

    def __init__(self, logger, run_cmd: Callable, host: str = "localhost"):
        self.logger = logger
        self.run_cmd = run_cmd
        self.host = host

    def _psql_cmd(self, config: ProxyConfiguration, query: str) -> List[str]:
        return [
            "psql",
            "-h",
            self.host,
            "-p",
            str(config.local_port),
            "-U",
            config.db_username,
            "-d",
            config.db_name,
            "-t",
            "-c",
            query,
        ]

    def execute(self, config: ProxyConfiguration, query: str):
        result = self.run_cmd(
            self._psql_cmd(config, query),
            check=False,
            capture_output=True,
            env={"PGPASSWORD": config.db_password},
        )
        return result.stdout or "", result.returncode == 0, result.stderr or ""

    def test(self, config: ProxyConfiguration) -> ConnectionReport:
        try:
            output, ok, stderr = self.execute(config, LIVENESS_QUERY)
        except ProxyError as exc:
            reason = " ".join(str(exc).split())
            raise ConnectionFailed(actionable_error("connection_failed", reason=reason)) from exc
        if not ok:
            reason = first_line(stderr) or first_line(output) or "psql exited with an error"
            raise ConnectionFailed(actionable_error("connection_failed", reason=reason))

        version_line = first_line(output)
        return ConnectionReport(version_line=version_line, details=self._details(config))

    def _details(self, config: ProxyConfiguration) -> Optional[TestResult]:
        try:
            output, ok, stderr = self.execute(config, DETAIL_QUERY)
        except ProxyError as exc:
            self.logger.warning("Detail query could not be executed: %s", exc)
            return None
        if not ok:
            self.logger.warning("Detail query failed: %s", first_line(stderr) or "no output")
            return None

        row = first_line(output)
        details = parse_detail_row(row)
        if details is None:
            self.logger.warning(
                "Detail row has %s field(s), expected %s; omitting database details.",
                len(row.split(DETAIL_DELIMITER)) if row else 0,
                DETAIL_FIELD_COUNT,
            )
        return details
