"""Proxy image acquisition from ECR."""

import base64
from typing import Callable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from pgproxyctl.errors import ImageAcquisitionFailed, ProxyError
from pgproxyctl.errors_catalog import actionable_error
from pgproxyctl.models import ProxyConfiguration


class ImageProviderService:
    """Logs docker in to the ECR registry and pulls the proxy image."""

    def __init__(
        self,
        logger,
        console,
        run_cmd: Callable,
        boto3_module=boto3,
        retry_count: int = 1,
        retry_backoff_seconds: float = 2.0,
    ):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd
        self.boto3 = boto3_module
        self.retry_count = retry_count
        self.retry_backoff_seconds = retry_backoff_seconds

    def acquire(self, config: ProxyConfiguration) -> str:
        self.authenticate(config)
        return self.pull(config)

    def authenticate(self, config: ProxyConfiguration):
        self.console.print("[blue]Logging in to ECR...[/blue]")
        try:
            client = self.boto3.client(
                "ecr",
                region_name=config.region,
                aws_access_key_id=config.access_key_id or None,
                aws_secret_access_key=config.secret_access_key or None,
            )
            response = client.get_authorization_token()
            token = response["authorizationData"][0]["authorizationToken"]
            username, _, password = base64.b64decode(token).decode("utf-8").partition(":")
        except (ClientError, BotoCoreError, KeyError, IndexError, ValueError) as exc:
            raise self._failed(config, f"ECR authorization failed ({exc})") from exc

        try:
            self.run_cmd(
                ["docker", "login", "--username", username, "--password-stdin", config.registry],
                check=True,
                capture_output=True,
                input_text=password,
            )
        except ProxyError as exc:
            raise self._failed(config, f"docker login failed ({exc})") from exc

    def pull(self, config: ProxyConfiguration) -> str:
        reference = config.image_reference
        self.console.print(f"[blue]Pulling {reference}...[/blue]")
        try:
            self.run_cmd(
                ["docker", "pull", reference],
                check=True,
                capture_output=True,
                retry_count=self.retry_count,
                retry_backoff_seconds=self.retry_backoff_seconds,
            )
        except ProxyError as exc:
            raise self._failed(config, f"docker pull failed ({exc})") from exc

        self.console.print("[green]Docker image pulled successfully from ECR.[/green]")
        return reference

    @staticmethod
    def _failed(config: ProxyConfiguration, reason: str) -> ImageAcquisitionFailed:
        reason = " ".join(reason.split())
        return ImageAcquisitionFailed(
            actionable_error("image_acquisition_failed", image=config.image_reference, reason=reason)
        )
