import subprocess

from pgproxyctl.errors import CommandFailedError, CommandNotFoundError
from pgproxyctl.models import RuntimeState
from pgproxyctl.services.docker_runtime import DockerRuntimeService


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class RecordingRunCmd:
    def __init__(self, returncode=0, stdout="", exc=None):
        self.returncode = returncode
        self.stdout = stdout
        self.exc = exc
        self.calls = []

    def __call__(self, cmd, check=True, capture_output=False, **kwargs):
        self.calls.append({"cmd": cmd, "check": check, **kwargs})
        if self.exc is not None:
            raise self.exc
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.stdout, stderr="")


def test_is_available_reflects_docker_info():
    assert DockerRuntimeService(DummyLogger(), RecordingRunCmd(returncode=0)).is_available()
    assert not DockerRuntimeService(DummyLogger(), RecordingRunCmd(returncode=1)).is_available()


def test_is_available_false_when_cli_missing():
    run_cmd = RecordingRunCmd(exc=CommandNotFoundError("Required command not found: docker"))

    assert DockerRuntimeService(DummyLogger(), run_cmd).is_available() is False


def test_get_state_maps_inspect_output():
    running = DockerRuntimeService(DummyLogger(), RecordingRunCmd(stdout="running\n"))
    exited = DockerRuntimeService(DummyLogger(), RecordingRunCmd(stdout="exited\n"))
    missing = DockerRuntimeService(DummyLogger(), RecordingRunCmd(returncode=1))

    assert running.get_state("proxy") is RuntimeState.RUNNING
    assert exited.get_state("proxy") is RuntimeState.STOPPED
    assert missing.get_state("proxy") is RuntimeState.ABSENT
    assert running.is_active("proxy") is True
    assert exited.is_active("proxy") is False


def test_stop_and_remove_never_check_exit_codes():
    run_cmd = RecordingRunCmd(returncode=1)
    service = DockerRuntimeService(DummyLogger(), run_cmd)

    service.stop("proxy")
    service.remove("proxy")

    assert [call["cmd"][:2] for call in run_cmd.calls] == [
        ["docker", "stop"],
        ["docker", "rm"],
        ["docker", "rm"],
    ]
    assert all(call["check"] is False for call in run_cmd.calls)
    assert run_cmd.calls[-1]["cmd"] == ["docker", "rm", "-f", "proxy"]


def test_start_keeps_secrets_off_the_command_line():
    run_cmd = RecordingRunCmd(stdout="abc123\n")
    service = DockerRuntimeService(DummyLogger(), run_cmd)

    container_id = service.start(
        name="postgres-ssm-proxy_cfg",
        image="registry/pg:latest",
        env={"AWS_ACCESS_KEY_ID": "AKIA", "AWS_SECRET_ACCESS_KEY": "topsecret"},
        mounts={"/home/me/cfg.json": "/config/proxy-config.json"},
        port=1337,
        labels={"pgproxyctl.config": "/home/me/cfg.json"},
    )

    call = run_cmd.calls[0]
    cmd = call["cmd"]
    assert container_id == "abc123"
    assert cmd[:3] == ["docker", "run", "-d"]
    assert "topsecret" not in " ".join(cmd)
    assert cmd[cmd.index("AWS_SECRET_ACCESS_KEY") - 1] == "-e"
    assert "/home/me/cfg.json:/config/proxy-config.json:ro" in cmd
    assert cmd[cmd.index("--restart") + 1] == "unless-stopped"
    assert cmd[-1] == "registry/pg:latest"
    assert call["env"]["AWS_SECRET_ACCESS_KEY"] == "topsecret"


def test_start_swallows_run_failure_for_later_verification():
    run_cmd = RecordingRunCmd(exc=CommandFailedError("Command failed (125): docker run"))
    service = DockerRuntimeService(DummyLogger(), run_cmd)

    assert service.start("proxy", "img", env={}, mounts={}, port=1337) == ""


def test_logs_follow_flag_and_summary():
    run_cmd = RecordingRunCmd(stdout="Up 3 minutes\t\n")
    service = DockerRuntimeService(DummyLogger(), run_cmd)

    assert service.logs("proxy", follow=True) == 0
    assert run_cmd.calls[0]["cmd"] == ["docker", "logs", "-f", "proxy"]
    assert service.summary("proxy") == "Up 3 minutes\t"
