"""Advisory per-instance locks for mutating commands."""

import fcntl
import json
import os
import tempfile
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from pgproxyctl.errors import OperationInProgress
from pgproxyctl.errors_catalog import actionable_error


def default_lock_dir() -> Path:
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        return Path(runtime_dir) / "pgproxyctl"
    return Path(tempfile.gettempdir()) / f"pgproxyctl-{os.getuid()}"


class LockManager:
    """Serializes start/stop for one container name across processes.

    The lock file stays on disk after release; only the flock marks ownership.
    """

    POLL_INTERVAL = 0.1

    def __init__(self, lock_dir: Optional[Path], logger, default_timeout: float = 30.0):
        self.lock_dir = Path(lock_dir) if lock_dir else default_lock_dir()
        self.logger = logger
        self.default_timeout = default_timeout

    def lock_path(self, name: str) -> Path:
        return self.lock_dir / f"{name}.lock"

    @contextmanager
    def instance_lock(self, name: str, timeout: Optional[float] = None) -> Iterator[Path]:
        path = self.lock_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        effective_timeout = self.default_timeout if timeout is None else timeout
        deadline = time.monotonic() + effective_timeout

        with open(path, "a+", encoding="utf-8") as file_obj:
            while True:
                try:
                    fcntl.flock(file_obj.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.monotonic() >= deadline:
                        raise OperationInProgress(
                            actionable_error("operation_in_progress", container=name, lock_path=path)
                        )
                    time.sleep(self.POLL_INTERVAL)

            try:
                file_obj.seek(0)
                file_obj.truncate()
                json.dump(
                    {
                        "pid": os.getpid(),
                        "path": str(path),
                        "acquired_at": datetime.now(timezone.utc).isoformat(),
                    },
                    file_obj,
                )
                file_obj.flush()
                self.logger.debug("Acquired lock %s", path)
                yield path
            finally:
                fcntl.flock(file_obj.fileno(), fcntl.LOCK_UN)
                self.logger.debug("Released lock %s", path)
