"""Shared fakes for sauceci tests: a scripted grid, a fake tunnel and a recording sink."""
from __future__ import annotations

import pytest

from sauceci.api_client import JOB_NOT_READY, JobStatus
from sauceci.errors import TunnelLaunchError
from sauceci.model import build_config
from sauceci.notifications import TunnelClose, TunnelOpen, TunnelOpened


class Recorder:
    """Sink that keeps every notification in order."""

    def __init__(self):
        self.events = []

    def __call__(self, notification):
        self.events.append(notification)

    def types(self):
        return [e.type for e in self.events]

    def of(self, kind):
        return [e for e in self.events if e.type is kind]


class FakeGrid:
    """
    Stand-in for SauceClient.

    results: per-platform result payloads, in submission order
    never_start: platform indexes that stay "job not ready" forever
    accept: how many platforms each submission accepts (default: all)
    polls: status calls before a started job reports completion
    """

    def __init__(self, results, never_start=(), accept=None, polls=1, fail_status=None):
        self.results = list(results)
        self.never_start = set(never_start)
        self.accept = accept
        self.polls = polls
        self.fail_status = fail_status
        self.submissions = []
        self.status_calls = {}
        self._next = 0

    async def start_js_tests(self, body):
        self.submissions.append(body)
        count = len(body["platforms"]) if self.accept is None else self.accept
        ids = []
        for _ in range(count):
            ids.append(f"test-{self._next}")
            self._next += 1
        return ids

    async def get_status(self, test_id):
        if self.fail_status is not None:
            raise self.fail_status
        index = int(test_id.split("-")[1])
        calls = self.status_calls[test_id] = self.status_calls.get(test_id, 0) + 1
        if index in self.never_start:
            return JobStatus(id=test_id, job_id=JOB_NOT_READY, completed=False)
        job_id = f"job{index}"
        if calls < self.polls:
            return JobStatus(id=test_id, job_id=job_id, completed=False)
        return JobStatus(
            id=test_id,
            job_id=job_id,
            url=f"https://saucelabs.com/jobs/{job_id}",
            result=self.results[index],
            completed=True,
        )


class FakeTunnel:
    """Tunnel double that emits the same lifecycle notifications as the real one."""

    def __init__(self, config, sink, fail_open=False, fail_close=False):
        self.id = config.identifier
        self.sink = sink
        self.fail_open = fail_open
        self.fail_close = fail_close
        self.open_calls = 0
        self.close_calls = 0
        self.opened = False

    async def open(self):
        self.open_calls += 1
        self.sink(TunnelOpen())
        if self.fail_open:
            raise TunnelLaunchError(self.id, "boom")
        self.opened = True
        self.sink(TunnelOpened())

    async def close(self):
        self.close_calls += 1
        if not self.opened:
            return
        self.sink(TunnelClose())
        if self.fail_close:
            raise RuntimeError("tunnel refused to die")


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_config():
    def _make(**overrides):
        options = {
            "username": "alice",
            "key": "secret",
            "urls": ["http://127.0.0.1:9999/test/index.html"],
            "test_interval": 5,
            "test_ready_timeout": 30,
            "tunneled": False,
        }
        options.update(overrides)
        return build_config(options)
    return _make
