"""Actionable error catalog for pgproxyctl."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "runtime_unavailable": {
        "what": "Docker is not running.",
        "next": "Start Docker and try again.",
    },
    "config_not_found": {
        "what": "Configuration file not found: {path}",
        "next": "Create the file or specify one with `--config <file>`.",
    },
    "config_invalid": {
        "what": "Invalid configuration file '{path}': {reason}",
        "next": "Fix the configuration file and rerun the command.",
    },
    "bastion_unavailable": {
        "what": "Bastion instance {instance_id} is in state: {state}",
        "next": "Wait for the instance to settle, then run `pgproxyctl --config {path} start` again.",
    },
    "bastion_timeout": {
        "what": "Bastion instance {instance_id} did not become ready within {timeout}s.",
        "next": "Check the instance in the EC2 console or raise `--bastion-timeout`.",
    },
    "image_acquisition_failed": {
        "what": "Failed to acquire proxy image {image}: {reason}",
        "next": "Check the ECR repository URI and the AWS credentials in the configuration.",
    },
    "launch_verification_failed": {
        "what": "Failed to start proxy container {container}.",
        "next": "Check logs with `docker logs {container}`.",
    },
    "proxy_not_running": {
        "what": "Proxy is not running for config: {path}",
        "next": "Start the proxy first: `pgproxyctl --config {path} start`.",
    },
    "connection_failed": {
        "what": "Connection test failed: {reason}",
        "next": "Check `pgproxyctl status`, the database credentials and `pgproxyctl logs`.",
    },
    "operation_in_progress": {
        "what": "Another pgproxyctl command is already managing {container}.",
        "next": "Wait for it to finish or remove the stale lock file {lock_path}.",
    },
}


def actionable_error(code: str, **kwargs) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
