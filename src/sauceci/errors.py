# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


class SauceCIError(Exception):
    """Base class for every error raised by sauceci."""
    pass


class ConfigError(SauceCIError):
    """Raised when a task file or job option set cannot be turned into a job."""
    pass


@dataclass
class TunnelLaunchError(SauceCIError):
    """
    The tunnel process failed to reach the live state.

    Raised when the binary cannot be started, exits before announcing
    readiness, or the startup timeout elapses.
    """
    identifier: str
    reason: str
    exit_code: int | None = None

    def __str__(self) -> str:
        msg = f"Tunnel {self.identifier} failed to open: {self.reason}"
        if self.exit_code is not None:
            msg += f" (exit={self.exit_code})"
        return msg


@dataclass
class TestReadyTimeoutError(SauceCIError):
    """A submitted browser job never started within the ready timeout."""
    __test__ = False

    test_id: str
    platform: str
    timeout_ms: int

    def __str__(self) -> str:
        return (
            f"Test {self.test_id} on {self.platform} did not start "
            f"within {self.timeout_ms}ms"
        )


@dataclass
class TestTimeoutError(SauceCIError):
    """A browser job kept running past the allowed number of status checks."""
    __test__ = False

    test_id: str
    platform: str
    attempts: int

    def __str__(self) -> str:
        return (
            f"Test {self.test_id} on {self.platform} did not complete "
            f"after {self.attempts} status checks"
        )


@dataclass
class RemoteInfrastructureError(SauceCIError):
    """
    The remote grid was unreachable or answered with something unusable.

    Carries enough context to print a one-line explanation without a
    traceback.
    """
    message: str
    status: int | None = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [self.message]
        if self.status is not None:
            lines.append(f"status={self.status}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


@dataclass
class CleanupError(SauceCIError):
    """The tunnel could not be closed cleanly. Reported, never raised past the engine."""
    identifier: str
    reason: str

    def __str__(self) -> str:
        return f"Tunnel {self.identifier} did not shut down cleanly: {self.reason}"
