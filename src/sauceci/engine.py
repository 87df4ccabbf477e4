# engine.py
from __future__ import annotations

import asyncio
from typing import Callable, Iterable, List, Optional, Tuple

from .errors import CleanupError
from .model import Framework, JobConfig
from .notifications import ErrorNotice, Sink, null_sink
from .test_runner import TestRunner
from .tunnel import Tunnel

TunnelFactory = Callable[[JobConfig, Sink], Tunnel]
RunnerFactory = Callable[[JobConfig, Framework, Sink], TestRunner]


def _default_tunnel(config: JobConfig, sink: Sink) -> Tunnel:
    return Tunnel(config, sink)


def _default_runner(config: JobConfig, framework: Framework, sink: Sink) -> TestRunner:
    return TestRunner(config, framework, sink)


async def run_job(
    config: JobConfig,
    framework: Framework | str,
    sink: Sink = null_sink,
    *,
    tunnel_factory: Optional[TunnelFactory] = None,
    runner_factory: Optional[RunnerFactory] = None,
) -> bool:
    """
    Run one job: open the tunnel (if tunneled), run the tests, close the
    tunnel. Always returns a bool; errors are reported through `sink` as
    ErrorNotice and turn into False.

    The tunnel is closed on every exit path, including cancellation, and
    a failing close never changes the result.
    """
    tunnel_factory = tunnel_factory or _default_tunnel
    runner_factory = runner_factory or _default_runner
    tunnel: Optional[Tunnel] = None

    try:
        try:
            framework = Framework(framework)
            config.validate()
            if config.tunneled:
                tunnel = tunnel_factory(config, sink)
                await tunnel.open()
                config = config.with_identifier(tunnel.id)

            runner = runner_factory(config, framework, sink)
            return await runner.run_tests()
        finally:
            if tunnel is not None:
                try:
                    await tunnel.close()
                except Exception as e:
                    sink(ErrorNotice.from_exception(CleanupError(tunnel.id, str(e))))
    except Exception as e:
        sink(ErrorNotice.from_exception(e))
        return False


def run_job_sync(config: JobConfig, framework: Framework | str, sink: Sink = null_sink) -> bool:
    """Blocking wrapper around run_job for callers without an event loop."""
    return asyncio.run(run_job(config, framework, sink))


async def run_jobs(
    jobs: Iterable[Tuple[JobConfig, Framework | str]],
    sink: Sink = null_sink,
    **kwargs,
) -> List[bool]:
    """
    Run independent jobs concurrently, one tunnel and one test run each.

    Returns the per-job results in input order; the caller decides how to
    combine them (usually all()).
    """
    return list(await asyncio.gather(
        *(run_job(config, framework, sink, **kwargs) for config, framework in jobs)
    ))
