"""Shared domain models for pgproxyctl."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .constants import (
    DEFAULT_BASTION_READY_TIMEOUT,
    DEFAULT_IMAGE_TAG,
    DEFAULT_LOCAL_PORT,
    DEFAULT_REGION,
)


class RuntimeState(Enum):
    ABSENT = "absent"
    RUNNING = "running"
    STOPPED = "stopped"


class BastionState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    TRANSITIONING = "transitioning"
    UNKNOWN = "unknown"
    OTHER = "other"


@dataclass(frozen=True)
class ProxyConfiguration:
    """Validated contents of one proxy configuration file."""

    source_path: str
    instance_id: str = ""
    rds_endpoint: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    region: str = DEFAULT_REGION
    local_port: int = DEFAULT_LOCAL_PORT
    db_username: str = ""
    db_password: str = ""
    db_name: str = ""
    connection_string: str = ""
    repository_uri: str = ""
    image_tag: str = DEFAULT_IMAGE_TAG
    bastion_ready_timeout: float = DEFAULT_BASTION_READY_TIMEOUT

    @property
    def image_reference(self) -> str:
        return f"{self.repository_uri}:{self.image_tag}"

    @property
    def registry(self) -> str:
        return self.repository_uri.split("/", 1)[0]


@dataclass(frozen=True)
class TestResult:
    """One parsed row of the connection detail query."""

    __test__ = False

    database_name: str
    user_name: str
    server_address: str
    server_port: str
    server_timestamp: str


@dataclass(frozen=True)
class ConnectionReport:
    version_line: str
    details: Optional[TestResult] = None


@dataclass(frozen=True)
class StartResult:
    container_name: str
    config_path: str
    already_running: bool
    local_port: int
    db_username: str
    db_password: str
    db_name: str
    connection_string: str
    host: str = "localhost"


@dataclass(frozen=True)
class StatusReport:
    container_name: str
    config_path: str
    running: bool
    connection_string: str = ""
    summary: Optional[str] = None
