# model.py
from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from . import settings
from .errors import ConfigError

# Seconds between the Unix epoch and 2009-01-01, used to keep tunnel
# identifiers short.
IDENTIFIER_EPOCH_OFFSET = 1230768000

_identifier_sequence = itertools.count(1)


class Framework(str, Enum):
    """Test frameworks understood by the remote grid's JS unit test API."""
    JASMINE = "jasmine"
    QUNIT = "qunit"
    YUI = "YUI Test"
    MOCHA = "mocha"
    CUSTOM = "custom"


def default_identifier() -> str:
    """
    Seconds since IDENTIFIER_EPOCH_OFFSET plus a per-process sequence number,
    so configs built in the same second still get distinct tunnel ids.
    """
    seconds = int(time.time() - IDENTIFIER_EPOCH_OFFSET)
    return f"{seconds}-{next(_identifier_sequence)}"


@dataclass
class JobConfig:
    """
    Everything needed to run one job: credentials, tunnel options, the
    pages to test and the browsers to test them on.

    Times are in milliseconds, matching the task file format.
    """
    username: Optional[str] = None
    key: Optional[str] = None

    tunneled: bool = True
    identifier: str = field(default_factory=default_identifier)
    tunnel_args: List[str] = field(default_factory=list)

    urls: List[str] = field(default_factory=list)
    test_name: str = ""
    build: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    browsers: List[Dict[str, Any]] = field(default_factory=lambda: [{}])
    sauce_config: Dict[str, Any] = field(default_factory=dict)

    test_interval: int = 2000
    test_ready_timeout: int = 5000
    status_check_attempts: int = 90   # -1 = poll forever
    max_retries: int = 0

    # Called with the raw per-job result; may return a bool to override
    # the framework verdict. May be a coroutine function.
    on_test_complete: Optional[Callable[[Dict[str, Any]], Any]] = None

    def __post_init__(self) -> None:
        # an empty browser list means "any platform"
        if not self.browsers:
            self.browsers = [{}]

    @property
    def number_of_jobs(self) -> int:
        return len(self.urls) * len(self.browsers)

    def with_identifier(self, identifier: str) -> JobConfig:
        return replace(self, identifier=identifier)

    def validate(self) -> None:
        """Raise ConfigError if the job cannot be submitted as configured."""
        missing = [name for name in ("username", "key") if not getattr(self, name)]
        if missing:
            raise ConfigError(
                f"Missing Sauce Labs credentials: {', '.join(missing)}. "
                "Set SAUCE_USERNAME / SAUCE_ACCESS_KEY or pass them in the task options."
            )
        if not self.urls:
            raise ConfigError("No test urls configured (option 'urls').")
        if self.test_interval <= 0:
            raise ConfigError(f"test_interval must be positive, got {self.test_interval}")


# Task files written for the original tool use camelCase option names.
_ALIASES = {
    "testInterval": "test_interval",
    "testReadyTimeout": "test_ready_timeout",
    "testname": "test_name",
    "testName": "test_name",
    "tunnelArgs": "tunnel_args",
    "sauceConfig": "sauce_config",
    "maxRetries": "max_retries",
    "statusCheckAttempts": "status_check_attempts",
    "onTestComplete": "on_test_complete",
}

_FIELD_NAMES = {f.name for f in fields(JobConfig)}


def build_config(options: Optional[Dict[str, Any]] = None, **overrides: Any) -> JobConfig:
    """
    Build a fresh JobConfig: defaults first, then `options`, then `overrides`.

    Credentials fall back to the environment. Each call returns an
    independent object; nothing is shared between jobs.
    """
    merged: Dict[str, Any] = {
        "username": settings.SAUCE_USERNAME,
        "key": settings.SAUCE_ACCESS_KEY,
    }

    for source in (options or {}, overrides):
        for name, value in source.items():
            canonical = _ALIASES.get(name, name)
            if canonical not in _FIELD_NAMES:
                raise ConfigError(f"Unknown job option: {name!r}")
            merged[canonical] = value

    # copy containers so callers' dicts are never mutated by a job
    for name in ("tunnel_args", "urls", "tags"):
        if name in merged:
            value = merged[name]
            merged[name] = [value] if isinstance(value, str) else list(value)
    if "browsers" in merged:
        merged["browsers"] = [dict(b) for b in merged["browsers"]]
    if "sauce_config" in merged:
        merged["sauce_config"] = dict(merged["sauce_config"])
    if "identifier" in merged:
        merged["identifier"] = str(merged["identifier"])

    return JobConfig(**merged)
