"""Tests for src/agentshell/main.py."""

from __future__ import annotations

import asyncio
import os
import signal
from collections.abc import Iterator
from types import FrameType

import pytest

from agentshell.cancellation import CancellationToken
from agentshell.main import _sigint_cancels

pytestmark = pytest.mark.skipif(os.name != "posix", reason="needs POSIX signals")


def _sentinel_handler(signum: int, frame: FrameType | None) -> None:
    pass


@pytest.fixture
def sentinel_sigint() -> Iterator[None]:
    original = signal.signal(signal.SIGINT, _sentinel_handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, original)


class TestSigintCancels:
    async def test_ctrl_c_fires_the_token(self, sentinel_sigint: None) -> None:
        token = CancellationToken()
        with _sigint_cancels(token):
            os.kill(os.getpid(), signal.SIGINT)
            for _ in range(50):
                if token.cancelled:
                    break
                await asyncio.sleep(0.01)
        assert token.cancelled

    async def test_previous_handler_restored(self, sentinel_sigint: None) -> None:
        with _sigint_cancels(CancellationToken()):
            assert signal.getsignal(signal.SIGINT) is not _sentinel_handler
        assert signal.getsignal(signal.SIGINT) is _sentinel_handler

    async def test_restored_after_error(self, sentinel_sigint: None) -> None:
        with pytest.raises(RuntimeError):
            with _sigint_cancels(CancellationToken()):
                raise RuntimeError("boom")
        assert signal.getsignal(signal.SIGINT) is _sentinel_handler
