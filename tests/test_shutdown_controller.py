from __future__ import annotations

import asyncio
import os
import signal

import pytest

from tiktok_relay.services.shutdown import ShutdownController


class FakeServer:
    should_exit = False


@pytest.mark.asyncio
async def test_shutdown_sets_should_exit_after_delay() -> None:
    server = FakeServer()
    controller = ShutdownController(delay_seconds=0.01)
    controller.attach(server)

    await controller.request_shutdown()
    assert controller.requested
    assert server.should_exit is False

    await asyncio.sleep(0.05)
    assert server.should_exit is True


@pytest.mark.asyncio
async def test_repeated_requests_schedule_once(monkeypatch) -> None:
    triggers: list[str] = []
    controller = ShutdownController(delay_seconds=0)
    monkeypatch.setattr(controller, "_trigger", lambda: triggers.append("stop"))

    await controller.request_shutdown()
    await controller.request_shutdown()
    await asyncio.sleep(0.01)

    assert triggers == ["stop"]


@pytest.mark.asyncio
async def test_without_server_the_process_signals_itself(monkeypatch) -> None:
    sent: list[tuple[int, int]] = []
    monkeypatch.setattr(os, "kill", lambda pid, sig: sent.append((pid, sig)))
    controller = ShutdownController(delay_seconds=0)

    await controller.request_shutdown()
    await asyncio.sleep(0.01)

    assert sent == [(os.getpid(), signal.SIGTERM)]
