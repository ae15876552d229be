"""Bastion instance services backed by the EC2 API."""

import math

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from pgproxyctl.errors import BastionReadyTimeout, BastionUnavailable
from pgproxyctl.errors_catalog import actionable_error
from pgproxyctl.models import BastionState, ProxyConfiguration

_STATE_MAP = {
    "running": BastionState.RUNNING,
    "stopped": BastionState.STOPPED,
    "pending": BastionState.TRANSITIONING,
    "stopping": BastionState.TRANSITIONING,
    "shutting-down": BastionState.TRANSITIONING,
}


class CloudInstanceService:
    """Describes, starts and waits for the bastion EC2 instance."""

    WAIT_DELAY_SECONDS = 15

    def __init__(self, logger, console, boto3_module=boto3):
        self.logger = logger
        self.console = console
        self.boto3 = boto3_module

    def _ec2_client(self, config: ProxyConfiguration):
        return self.boto3.client(
            "ec2",
            region_name=config.region,
            aws_access_key_id=config.access_key_id or None,
            aws_secret_access_key=config.secret_access_key or None,
        )

    def describe(self, config: ProxyConfiguration) -> BastionState:
        try:
            response = self._ec2_client(config).describe_instances(InstanceIds=[config.instance_id])
            reservations = response.get("Reservations", [])
            if not reservations or not reservations[0].get("Instances"):
                return BastionState.UNKNOWN
            state_name = reservations[0]["Instances"][0]["State"]["Name"]
        except (ClientError, BotoCoreError) as exc:
            self.logger.warning("Could not describe bastion %s: %s", config.instance_id, exc)
            return BastionState.UNKNOWN

        self.logger.debug("Bastion %s reports state '%s'.", config.instance_id, state_name)
        return _STATE_MAP.get(state_name, BastionState.OTHER)

    def start(self, config: ProxyConfiguration):
        self.console.print("[yellow]Starting bastion instance...[/yellow]")
        try:
            self._ec2_client(config).start_instances(InstanceIds=[config.instance_id])
        except (ClientError, BotoCoreError) as exc:
            raise BastionUnavailable(
                actionable_error(
                    "bastion_unavailable",
                    instance_id=config.instance_id,
                    state=f"stopped (start request failed: {exc})",
                    path=config.source_path,
                ),
                state=BastionState.STOPPED,
            ) from exc

    def wait_until_ready(self, config: ProxyConfiguration, timeout: float):
        """Block until the instance passes its status checks or ``timeout`` expires."""
        self.console.print("[yellow]Waiting for bastion instance to be ready...[/yellow]")
        max_attempts = max(1, math.ceil(timeout / self.WAIT_DELAY_SECONDS))
        try:
            waiter = self._ec2_client(config).get_waiter("instance_status_ok")
            waiter.wait(
                InstanceIds=[config.instance_id],
                WaiterConfig={"Delay": self.WAIT_DELAY_SECONDS, "MaxAttempts": max_attempts},
            )
        except WaiterError as exc:
            self.logger.debug("Waiter gave up: %s", exc)
            raise BastionReadyTimeout(
                actionable_error(
                    "bastion_timeout",
                    instance_id=config.instance_id,
                    timeout=f"{timeout:g}",
                )
            ) from exc
        except (ClientError, BotoCoreError) as exc:
            raise BastionUnavailable(
                actionable_error(
                    "bastion_unavailable",
                    instance_id=config.instance_id,
                    state=f"pending (status check failed: {exc})",
                    path=config.source_path,
                ),
                state=BastionState.TRANSITIONING,
            ) from exc
        self.console.print("[green]Bastion instance is ready.[/green]")
