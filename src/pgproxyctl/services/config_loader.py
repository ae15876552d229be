"""Configuration loader for pgproxyctl."""

from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import yaml

from pgproxyctl.constants import (
    DEFAULT_BASTION_READY_TIMEOUT,
    DEFAULT_IMAGE_TAG,
    DEFAULT_LOCAL_PORT,
    DEFAULT_REGION,
)
from pgproxyctl.errors import ConfigurationInvalid, ConfigurationNotFound
from pgproxyctl.errors_catalog import actionable_error
from pgproxyctl.models import ProxyConfiguration

# field name -> (key path in the document, default)
_STRING_FIELDS: Dict[str, Tuple[Tuple[str, ...], Optional[str]]] = {
    "instance_id": (("bastion", "instance_id"), None),
    "rds_endpoint": (("rds", "endpoint"), None),
    "access_key_id": (("aws_credentials", "access_key_id"), None),
    "secret_access_key": (("aws_credentials", "secret_access_key"), None),
    "region": (("aws_region",), DEFAULT_REGION),
    "db_username": (("database", "username"), None),
    "db_password": (("database", "password"), None),
    "db_name": (("database", "database"), None),
    "connection_string": (("database", "connection_string"), None),
    "repository_uri": (("ecr", "repository_uri"), None),
    "image_tag": (("ecr", "tag"), DEFAULT_IMAGE_TAG),
}

START_FIELDS = frozenset(
    {
        "instance_id",
        "rds_endpoint",
        "access_key_id",
        "secret_access_key",
        "region",
        "db_username",
        "db_password",
        "db_name",
        "connection_string",
        "repository_uri",
        "image_tag",
    }
)
STATUS_FIELDS = frozenset({"connection_string"})
TEST_FIELDS = frozenset({"db_username", "db_password", "db_name"})


class ConfigLoader:
    """Loads proxy configuration files and validates them eagerly.

    The same file is mounted into the proxy container, so keys this tool does
    not know about are left alone.
    """

    def load(self, config_path: str, required: Iterable[str] = ()) -> ProxyConfiguration:
        path = Path(config_path)
        if not path.is_file():
            raise ConfigurationNotFound(actionable_error("config_not_found", path=config_path))

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError, UnicodeDecodeError) as exc:
            raise self._invalid(config_path, f"could not be parsed ({exc})") from exc

        if not isinstance(parsed, dict):
            raise self._invalid(config_path, "root must be a mapping")

        values: Dict[str, Any] = {}
        for field_name, (key_path, default) in _STRING_FIELDS.items():
            value = self._lookup(parsed, key_path, config_path)
            if value is None:
                value = default
            elif isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise self._invalid(config_path, f"'{'.'.join(key_path)}' must be a string")
            values[field_name] = "" if value is None else str(value).strip()

        values["local_port"] = self._read_port(parsed, config_path)
        values["bastion_ready_timeout"] = self._read_timeout(parsed, config_path)

        missing = [
            ".".join(_STRING_FIELDS[name][0]) for name in sorted(required) if not values.get(name)
        ]
        if missing:
            raise self._invalid(config_path, f"missing required field(s): {', '.join(missing)}")

        return ProxyConfiguration(source_path=str(config_path), **values)

    def _lookup(self, document: Mapping[str, Any], key_path: Tuple[str, ...], config_path: str):
        node: Any = document
        for index, key in enumerate(key_path):
            if node is None:
                return None
            if not isinstance(node, dict):
                section = ".".join(key_path[:index])
                raise self._invalid(config_path, f"'{section}' must be a mapping")
            node = node.get(key)
        return node

    def _read_port(self, document: Mapping[str, Any], config_path: str) -> int:
        value = document.get("local_port")
        if value is None:
            return DEFAULT_LOCAL_PORT
        try:
            if isinstance(value, bool):
                raise ValueError(value)
            port = int(str(value).strip())
        except ValueError as exc:
            raise self._invalid(config_path, "'local_port' must be an integer") from exc
        if not 1 <= port <= 65535:
            raise self._invalid(config_path, "'local_port' must be between 1 and 65535")
        return port

    def _read_timeout(self, document: Mapping[str, Any], config_path: str) -> float:
        value = document.get("bastion_ready_timeout")
        if value is None:
            return DEFAULT_BASTION_READY_TIMEOUT
        try:
            if isinstance(value, bool):
                raise ValueError(value)
            timeout = float(value)
        except (TypeError, ValueError) as exc:
            raise self._invalid(config_path, "'bastion_ready_timeout' must be a number") from exc
        if timeout <= 0:
            raise self._invalid(config_path, "'bastion_ready_timeout' must be positive")
        return timeout

    @staticmethod
    def _invalid(config_path: str, reason: str) -> ConfigurationInvalid:
        return ConfigurationInvalid(actionable_error("config_invalid", path=config_path, reason=reason))
