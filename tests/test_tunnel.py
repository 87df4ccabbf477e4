import asyncio
import sys

import pytest

from sauceci.errors import TunnelLaunchError
from sauceci.model import JobConfig
from sauceci.notifications import NotificationType
from sauceci.tunnel import Tunnel, TunnelState

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")

READY = "print('Sauce Connect is up, you may start your tests.', flush=True)"

LIVE_TUNNEL = f"""
import sys, time
print('Starting tunnel', flush=True)
print('some warning', file=sys.stderr, flush=True)
{READY}
time.sleep(60)
"""

STUBBORN_TUNNEL = f"""
import signal, time
signal.signal(signal.SIGTERM, signal.SIG_IGN)
{READY}
time.sleep(60)
"""

CRASHING_TUNNEL = """
import sys
print('Could not connect', flush=True)
sys.exit(3)
"""

SLOW_TUNNEL = """
import time
time.sleep(60)
"""

DYING_TUNNEL = f"""
import sys, time
{READY}
time.sleep(0.2)
sys.exit(1)
"""

CHATTY_TUNNEL = f"""
import sys, time
sys.stdout.write("x" * (3 * 1024 * 1024) + "\\n")
sys.stdout.flush()
{READY}
time.sleep(60)
"""


def make_tunnel(script, recorder, **kwargs):
    config = JobConfig(username="alice", key="secret", identifier="1234", tunnel_args=["--no-ssl-bump-domains", "all"])
    kwargs.setdefault("startup_timeout", 10)
    kwargs.setdefault("shutdown_timeout", 5)
    return Tunnel(config, recorder, binary=[sys.executable, "-c", script], **kwargs)


def test_command_line():
    config = JobConfig(username="alice", key="secret", identifier="1234", tunnel_args=["--verbose"])
    tunnel = Tunnel(config, binary="sc")
    assert tunnel.id == "1234"
    assert tunnel.command() == ["sc", "-u", "alice", "-k", "secret", "-i", "1234", "--verbose"]


@pytest.mark.asyncio
async def test_open_then_close(recorder):
    tunnel = make_tunnel(LIVE_TUNNEL, recorder)

    await tunnel.open()
    assert tunnel.state is TunnelState.OPEN
    await tunnel.close()
    assert tunnel.state is TunnelState.CLOSED

    types = recorder.types()
    assert types[0] is NotificationType.TUNNEL_OPEN
    assert types.index(NotificationType.TUNNEL_OPENED) < types.index(NotificationType.TUNNEL_CLOSE)
    texts = [e.text for e in recorder.of(NotificationType.TUNNEL_EVENT)]
    assert "Starting tunnel" in texts
    errors = [e for e in recorder.of(NotificationType.TUNNEL_EVENT) if e.method == "error"]
    assert errors and errors[0].text == "some warning" and errors[0].verbose is False


@pytest.mark.asyncio
async def test_async_with_closes(recorder):
    async with make_tunnel(LIVE_TUNNEL, recorder) as tunnel:
        assert tunnel.state is TunnelState.OPEN
    assert tunnel.state is TunnelState.CLOSED
    assert recorder.types().count(NotificationType.TUNNEL_CLOSE) == 1


@pytest.mark.asyncio
async def test_process_exiting_early_is_launch_error(recorder):
    tunnel = make_tunnel(CRASHING_TUNNEL, recorder)

    with pytest.raises(TunnelLaunchError) as info:
        await tunnel.open()

    assert info.value.exit_code == 3
    assert tunnel.state is TunnelState.FAILED
    assert NotificationType.TUNNEL_OPENED not in recorder.types()


@pytest.mark.asyncio
async def test_startup_timeout_is_launch_error(recorder):
    tunnel = make_tunnel(SLOW_TUNNEL, recorder, startup_timeout=0.3)

    with pytest.raises(TunnelLaunchError, match="not ready"):
        await tunnel.open()

    assert tunnel.state is TunnelState.FAILED
    assert tunnel._proc.returncode is not None


@pytest.mark.asyncio
async def test_missing_binary_is_launch_error(recorder):
    config = JobConfig(identifier="1234")
    tunnel = Tunnel(config, recorder, binary="/nonexistent/sauce-connect")

    with pytest.raises(TunnelLaunchError, match="could not start"):
        await tunnel.open()
    assert tunnel.state is TunnelState.FAILED


@pytest.mark.asyncio
async def test_close_without_open_is_a_noop(recorder):
    tunnel = make_tunnel(LIVE_TUNNEL, recorder)
    await tunnel.close()
    assert recorder.events == []
    assert tunnel.state is TunnelState.IDLE


@pytest.mark.asyncio
async def test_close_after_failed_open_is_a_noop(recorder):
    tunnel = make_tunnel(CRASHING_TUNNEL, recorder)
    with pytest.raises(TunnelLaunchError):
        await tunnel.open()
    before = list(recorder.events)

    await tunnel.close()

    assert recorder.events == before
    assert NotificationType.TUNNEL_OPENED not in recorder.types()


@pytest.mark.asyncio
async def test_close_is_idempotent(recorder):
    tunnel = make_tunnel(LIVE_TUNNEL, recorder)
    await tunnel.open()
    await tunnel.close()
    await tunnel.close()
    assert recorder.types().count(NotificationType.TUNNEL_CLOSE) == 1


@pytest.mark.asyncio
async def test_close_kills_a_process_that_ignores_sigterm(recorder):
    tunnel = make_tunnel(STUBBORN_TUNNEL, recorder, shutdown_timeout=0.3)
    await tunnel.open()

    await tunnel.close()

    assert tunnel.state is TunnelState.CLOSED
    assert tunnel._proc.returncode is not None
    warnings = [e for e in recorder.of(NotificationType.TUNNEL_EVENT) if e.method == "warn"]
    assert any("did not shut down cleanly" in w.text for w in warnings)


@pytest.mark.asyncio
async def test_tunnel_dying_while_open_fails(recorder):
    tunnel = make_tunnel(DYING_TUNNEL, recorder)
    await tunnel.open()

    await asyncio.sleep(1.0)
    assert tunnel.state is TunnelState.FAILED

    await tunnel.close()
    assert NotificationType.TUNNEL_CLOSE in recorder.types()
    assert tunnel.state is TunnelState.FAILED


@pytest.mark.asyncio
async def test_open_twice_is_rejected(recorder):
    tunnel = make_tunnel(LIVE_TUNNEL, recorder)
    await tunnel.open()
    try:
        with pytest.raises(TunnelLaunchError):
            await tunnel.open()
    finally:
        await tunnel.close()


@pytest.mark.asyncio
async def test_oversized_output_line_does_not_stall_startup(recorder):
    tunnel = make_tunnel(CHATTY_TUNNEL, recorder)

    await tunnel.open()
    assert tunnel.state is TunnelState.OPEN
    await tunnel.close()

    warnings = [e.text for e in recorder.of(NotificationType.TUNNEL_EVENT) if e.method == "warn"]
    assert any("skipped" in text for text in warnings)
