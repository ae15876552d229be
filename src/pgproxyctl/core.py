import logging
import os
import subprocess
import time
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .constants import (
    CONTAINER_CONFIG_PATH,
    CONTAINER_LABEL,
    DEFAULT_LOCK_TIMEOUT,
    LAUNCH_SETTLE_SECONDS,
)
from .errors import (
    BastionUnavailable,
    LaunchVerificationFailed,
    ProxyError,
    ProxyNotRunning,
    RuntimeUnavailable,
)
from .errors_catalog import actionable_error
from .models import (
    BastionState,
    ConnectionReport,
    ProxyConfiguration,
    RuntimeState,
    StartResult,
    StatusReport,
)
from .naming import derive_instance_identity
from .services.cloud_instance import CloudInstanceService
from .services.command_runner import CommandRunner
from .services.config_loader import START_FIELDS, STATUS_FIELDS, TEST_FIELDS, ConfigLoader
from .services.connection_tester import ConnectionTesterService
from .services.docker_runtime import DockerRuntimeService
from .services.image_provider import ImageProviderService
from .services.locking import LockManager

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger("pgproxyctl")


class ProxyManager:
    """Keeps exactly one proxy container running per configuration file."""

    COMMANDS = ["start", "stop", "restart", "status", "test", "logs", "help"]
    MUTATING_COMMANDS = {"start", "stop", "restart"}

    def __init__(
        self,
        config_path: str,
        follow: bool = False,
        bastion_timeout: Optional[float] = None,
        retry_count: int = 1,
        retry_backoff_seconds: float = 2.0,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        lock_dir: Optional[str] = None,
        settle_seconds: float = LAUNCH_SETTLE_SECONDS,
    ):
        self.config_path = config_path
        self.follow = follow
        self.bastion_timeout = bastion_timeout
        self.settle_seconds = settle_seconds
        self.container_name = derive_instance_identity(config_path)

        self.config_loader = ConfigLoader()
        self.command_runner = CommandRunner(logger=logger)
        self.runtime = DockerRuntimeService(logger=logger, run_cmd=self._run_cmd)
        self.cloud = CloudInstanceService(logger=logger, console=console)
        self.image_provider = ImageProviderService(
            logger=logger,
            console=console,
            run_cmd=self._run_cmd,
            retry_count=retry_count,
            retry_backoff_seconds=retry_backoff_seconds,
        )
        self.connection_tester = ConnectionTesterService(logger=logger, run_cmd=self._run_cmd)
        self.lock_manager = LockManager(lock_dir, logger=logger, default_timeout=lock_timeout)

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        **kwargs,
    ) -> subprocess.CompletedProcess:
        return self.command_runner.run(cmd, check=check, capture_output=capture_output, **kwargs)

    def load_config(self, required) -> ProxyConfiguration:
        return self.config_loader.load(self.config_path, required=required)

    def ensure_runtime(self):
        if not self.runtime.is_available():
            raise RuntimeUnavailable(actionable_error("runtime_unavailable"))

    def ensure_bastion(self, config: ProxyConfiguration):
        console.print("[blue]Checking bastion instance...[/blue]")
        state = self.cloud.describe(config)

        if state is BastionState.RUNNING:
            return
        if state is BastionState.STOPPED:
            timeout = self.bastion_timeout or config.bastion_ready_timeout
            logger.info("Bastion %s is stopped; starting it.", config.instance_id)
            self.cloud.start(config)
            self.cloud.wait_until_ready(config, timeout=timeout)
            return

        raise BastionUnavailable(
            actionable_error(
                "bastion_unavailable",
                instance_id=config.instance_id,
                state=state.value,
                path=self.config_path,
            ),
            state=state,
        )

    def start(self) -> StartResult:
        self.ensure_runtime()
        config = self.load_config(START_FIELDS)

        if self.runtime.get_state(self.container_name) is RuntimeState.RUNNING:
            logger.info("Container %s is already running.", self.container_name)
            return self._start_result(config, already_running=True)

        self.ensure_bastion(config)
        image = self.image_provider.acquire(config)

        if self.runtime.get_state(self.container_name) is RuntimeState.STOPPED:
            logger.info("Removing stale container %s.", self.container_name)
            self.runtime.remove(self.container_name)

        console.print("[blue]Starting proxy container...[/blue]")
        self.runtime.start(
            name=self.container_name,
            image=image,
            env={
                "AWS_ACCESS_KEY_ID": config.access_key_id,
                "AWS_SECRET_ACCESS_KEY": config.secret_access_key,
                "AWS_REGION": config.region,
                "LOCAL_PORT": str(config.local_port),
            },
            mounts={os.path.realpath(self.config_path): CONTAINER_CONFIG_PATH},
            port=config.local_port,
            labels={CONTAINER_LABEL: os.path.realpath(self.config_path)},
        )

        time.sleep(self.settle_seconds)
        if self.runtime.get_state(self.container_name) is not RuntimeState.RUNNING:
            raise LaunchVerificationFailed(
                actionable_error("launch_verification_failed", container=self.container_name)
            )

        return self._start_result(config, already_running=False)

    def _start_result(self, config: ProxyConfiguration, already_running: bool) -> StartResult:
        return StartResult(
            container_name=self.container_name,
            config_path=self.config_path,
            already_running=already_running,
            local_port=config.local_port,
            db_username=config.db_username,
            db_password=config.db_password,
            db_name=config.db_name,
            connection_string=config.connection_string,
        )

    def stop(self):
        self.ensure_runtime()
        console.print("[blue]Stopping proxy container...[/blue]")
        self.runtime.stop(self.container_name)

    def restart(self) -> StartResult:
        try:
            self.stop()
        except ProxyError as exc:
            logger.warning("Stop before restart failed: %s", exc)
        console.print("")
        return self.start()

    def status(self) -> StatusReport:
        self.ensure_runtime()
        config = self.load_config(STATUS_FIELDS)

        if not self.runtime.is_active(self.container_name):
            return StatusReport(
                container_name=self.container_name,
                config_path=self.config_path,
                running=False,
            )

        return StatusReport(
            container_name=self.container_name,
            config_path=self.config_path,
            running=True,
            connection_string=config.connection_string,
            summary=self.runtime.summary(self.container_name),
        )

    def test(self) -> ConnectionReport:
        self.ensure_runtime()
        config = self.load_config(TEST_FIELDS)

        if not self.runtime.is_active(self.container_name):
            raise ProxyNotRunning(actionable_error("proxy_not_running", path=self.config_path))

        console.print("[blue]Testing connection to PostgreSQL via proxy...[/blue]")
        console.print(f"Config: {self.config_path}", markup=False)
        console.print(f"Container: {self.container_name}", markup=False)
        return self.connection_tester.test(config)

    def logs(self) -> int:
        self.ensure_runtime()
        try:
            returncode = self.runtime.logs(self.container_name, follow=self.follow)
        except KeyboardInterrupt:
            return 0
        if not self.follow:
            console.print("")
            console.print("To follow logs, run: [bold]pgproxyctl logs -f[/bold]")
        return 0 if returncode == 0 else 1

    def print_start_result(self, result: StartResult):
        if result.already_running:
            console.print(f"[green]Proxy is already running for config: {escape(result.config_path)}[/green]")
            console.print(
                f"To restart, run: pgproxyctl --config {result.config_path} restart",
                markup=False,
            )
            return

        console.print("")
        console.print("[bold green]=== Proxy Started Successfully ===[/bold green]")
        console.print(f"Container: {result.container_name}", markup=False)
        console.print(f"Config: {result.config_path}", markup=False)
        console.print("")
        console.print("PostgreSQL is available at:")
        console.print(f"  Host:     {result.host}", markup=False)
        console.print(f"  Port:     {result.local_port}", markup=False)
        console.print(f"  Username: {result.db_username}", markup=False)
        console.print(f"  Password: {result.db_password}", markup=False)
        console.print(f"  Database: {result.db_name}", markup=False)
        console.print("")
        console.print("Connection string:")
        console.print(f"  {result.connection_string}", markup=False)
        console.print("")
        console.print("To connect:")
        console.print(
            f"  psql -h {result.host} -p {result.local_port} -U {result.db_username} -d {result.db_name}",
            markup=False,
        )
        console.print("")
        console.print("To view logs:  pgproxyctl logs")
        console.print("To stop:       pgproxyctl stop")

    def print_status(self, report: StatusReport):
        if not report.running:
            console.print(f"[red]✗ Proxy is not running for config: {escape(report.config_path)}[/red]")
            console.print("")
            console.print(
                f"To start the proxy, run: pgproxyctl --config {report.config_path} start",
                markup=False,
            )
            return

        console.print(f"[green]✓ Proxy is running for config: {escape(report.config_path)}[/green]")
        if report.summary:
            status, _, ports = report.summary.partition("\t")
            table = Table("NAMES", "STATUS", "PORTS")
            table.add_row(report.container_name, status, ports)
            console.print(table)
        console.print("")
        console.print("Connection string:")
        console.print(f"  {report.connection_string}", markup=False)

    def print_connection_report(self, report: ConnectionReport):
        console.print(report.version_line, markup=False)
        console.print("")
        console.print("[bold green]✅ Connection test successful![/bold green]")
        if report.details is None:
            return

        details = report.details
        console.print("")
        console.print("Database details:")
        console.print(f"  Database: {details.database_name}", markup=False)
        console.print(f"  User: {details.user_name}", markup=False)
        console.print(f"  Server: {details.server_address}:{details.server_port}", markup=False)
        console.print(f"  Timestamp: {details.server_timestamp}", markup=False)

    def _dispatch(self, command: str) -> int:
        if command in ("start", "restart"):
            result = self.start() if command == "start" else self.restart()
            self.print_start_result(result)
        elif command == "stop":
            self.stop()
            console.print(f"[green]✓ Proxy stopped for config: {escape(self.config_path)}[/green]")
        elif command == "status":
            self.print_status(self.status())
        elif command == "test":
            self.print_connection_report(self.test())
        elif command == "logs":
            return self.logs()
        else:
            raise ProxyError(f"Unknown command: {command}")
        return 0

    def run(self, command: str) -> int:
        try:
            logger.debug("Running '%s' for container %s", command, self.container_name)
            if command in self.MUTATING_COMMANDS:
                with self.lock_manager.instance_lock(self.container_name):
                    return self._dispatch(command)
            return self._dispatch(command)

        except KeyboardInterrupt:
            err_console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except ProxyError as exc:
            err_console.print(
                f"[bold red]Error:[/bold red] {escape(str(exc))}",
                highlight=False,
                soft_wrap=True,
            )
            logger.debug("Command '%s' failed", command, exc_info=True)
            return 1
        except Exception as exc:
            err_console.print(f"[bold red]Unexpected error:[/bold red] {escape(str(exc))}")
            logger.exception("Unexpected error")
            return 1
