"""Domain errors for pgproxyctl."""


class ProxyError(RuntimeError):
    """Raised when a proxy command cannot continue safely."""


class CommandNotFoundError(ProxyError):
    """Raised when an external executable is missing or cannot be executed."""


class CommandFailedError(ProxyError):
    """Raised when an external command exits non-zero or times out."""


class RuntimeUnavailable(ProxyError):
    pass


class ConfigurationNotFound(ProxyError):
    pass


class ConfigurationInvalid(ProxyError):
    pass


class BastionUnavailable(ProxyError):
    """Raised when the bastion is in a state the manager will not act on."""

    def __init__(self, message: str, state=None):
        super().__init__(message)
        self.state = state


class BastionReadyTimeout(ProxyError):
    pass


class ImageAcquisitionFailed(ProxyError):
    pass


class LaunchVerificationFailed(ProxyError):
    pass


class ProxyNotRunning(ProxyError):
    pass


class ConnectionFailed(ProxyError):
    pass


class OperationInProgress(ProxyError):
    """Raised when another invocation holds the lock for this instance."""
