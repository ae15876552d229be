"""Docker runtime services for pgproxyctl."""

from typing import Callable, Dict, List, Mapping, Optional

from pgproxyctl.errors import CommandNotFoundError, ProxyError
from pgproxyctl.models import RuntimeState


class DockerRuntimeService:
    """Answers runtime questions about named containers and drives their lifecycle."""

    def __init__(self, logger, run_cmd: Callable):
        self.logger = logger
        self.run_cmd = run_cmd

    def is_available(self) -> bool:
        try:
            result = self.run_cmd(["docker", "info"], check=False, capture_output=True)
        except CommandNotFoundError:
            self.logger.debug("Docker CLI is not installed.")
            return False
        return result.returncode == 0

    def get_state(self, name: str) -> RuntimeState:
        result = self.run_cmd(
            ["docker", "inspect", "--type", "container", "--format", "{{.State.Status}}", name],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0:
            return RuntimeState.ABSENT

        status = (result.stdout or "").strip().lower()
        self.logger.debug("Container %s reports status '%s'.", name, status)
        if status == "running":
            return RuntimeState.RUNNING
        return RuntimeState.STOPPED

    def is_active(self, name: str) -> bool:
        return self.get_state(name) is RuntimeState.RUNNING

    def summary(self, name: str) -> Optional[str]:
        result = self.run_cmd(
            [
                "docker",
                "ps",
                "--filter",
                f"name=^{name}$",
                "--format",
                "{{.Status}}\t{{.Ports}}",
            ],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0:
            return None
        lines = [line for line in (result.stdout or "").splitlines() if line.strip()]
        return lines[0] if lines else None

    def remove(self, name: str):
        self.run_cmd(["docker", "rm", "-f", name], check=False, capture_output=True)

    def stop(self, name: str):
        self.run_cmd(["docker", "stop", name], check=False, capture_output=True)
        self.run_cmd(["docker", "rm", name], check=False, capture_output=True)

    def start(
        self,
        name: str,
        image: str,
        env: Mapping[str, str],
        mounts: Dict[str, str],
        port: int,
        labels: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Launch a detached container and return its id.

        Environment values are handed to docker through its own environment,
        so only the variable names appear on the command line.
        """
        cmd: List[str] = [
            "docker",
            "run",
            "-d",
            "--name",
            name,
            "--network",
            "host",
            "--restart",
            "unless-stopped",
        ]
        for key in env:
            cmd += ["-e", key]
        for host_path, container_path in mounts.items():
            cmd += ["-v", f"{host_path}:{container_path}:ro"]
        for key, value in (labels or {}).items():
            cmd += ["--label", f"{key}={value}"]
        cmd.append(image)

        self.logger.info("Starting container %s from %s (local port %s).", name, image, port)
        try:
            result = self.run_cmd(cmd, check=True, capture_output=True, env=dict(env))
        except ProxyError as exc:
            # docker may have created the container before failing; verification decides.
            self.logger.warning("docker run reported an error: %s", exc)
            return ""
        return (result.stdout or "").strip()

    def logs(self, name: str, follow: bool = False) -> int:
        cmd = ["docker", "logs"]
        if follow:
            cmd.append("-f")
        cmd.append(name)
        result = self.run_cmd(cmd, check=False, capture_output=False)
        return result.returncode
