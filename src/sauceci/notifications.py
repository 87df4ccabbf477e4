# notifications.py
"""
Progress notifications emitted while a job runs.

Producers (the tunnel, the test runner, the engine) build one of the records
below and hand it to a sink. A sink is any callable taking one notification;
it decides how (or whether) to render it. Sinks must tolerate types they do
not recognise, since new kinds may be added later.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Union


class NotificationType(str, Enum):
    TUNNEL_OPEN = "tunnelOpen"
    TUNNEL_OPENED = "tunnelOpened"
    TUNNEL_CLOSE = "tunnelClose"
    TUNNEL_EVENT = "tunnelEvent"
    JOB_STARTED = "jobStarted"
    JOB_COMPLETED = "jobCompleted"
    TEST_COMPLETED = "testCompleted"
    # Not part of the job lifecycle: failures reported by the engine.
    ERROR = "error"


@dataclass(frozen=True)
class TunnelOpen:
    type: NotificationType = field(default=NotificationType.TUNNEL_OPEN, init=False)


@dataclass(frozen=True)
class TunnelOpened:
    type: NotificationType = field(default=NotificationType.TUNNEL_OPENED, init=False)


@dataclass(frozen=True)
class TunnelClose:
    type: NotificationType = field(default=NotificationType.TUNNEL_CLOSE, init=False)


@dataclass(frozen=True)
class TunnelEvent:
    """A line of tunnel process output. `method` is writeln | ok | error | warn."""
    method: str
    text: str
    verbose: bool = False
    type: NotificationType = field(default=NotificationType.TUNNEL_EVENT, init=False)


@dataclass(frozen=True)
class JobStarted:
    started_jobs: int
    number_of_jobs: int
    type: NotificationType = field(default=NotificationType.JOB_STARTED, init=False)


@dataclass(frozen=True)
class JobCompleted:
    url: str
    platform: str
    passed: bool
    tunnel_id: str | None = None
    type: NotificationType = field(default=NotificationType.JOB_COMPLETED, init=False)


@dataclass(frozen=True)
class TestCompleted:
    __test__ = False

    passed: bool
    type: NotificationType = field(default=NotificationType.TEST_COMPLETED, init=False)


@dataclass(frozen=True)
class ErrorNotice:
    message: str
    error_type: str = "Error"
    type: NotificationType = field(default=NotificationType.ERROR, init=False)

    @classmethod
    def from_exception(cls, exc: BaseException) -> ErrorNotice:
        return cls(message=str(exc) or repr(exc), error_type=type(exc).__name__)


Notification = Union[
    TunnelOpen,
    TunnelOpened,
    TunnelClose,
    TunnelEvent,
    JobStarted,
    JobCompleted,
    TestCompleted,
    ErrorNotice,
]

Sink = Callable[[Notification], None]


def null_sink(notification: Notification) -> None:
    """Sink that drops everything."""
    return None
