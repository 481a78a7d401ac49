"""Readiness flag plus in-flight request accounting for clean shutdowns."""

from __future__ import annotations

import asyncio

import structlog

log = structlog.get_logger(__name__)


class ServiceLifecycle:
    """Tracks whether the service accepts traffic and how many requests run.

    ``mark_ready()`` is called at the end of startup; ``drain()`` at the
    start of shutdown flips readiness off and waits (bounded) for running
    resolutions to finish before resources are closed.
    """

    def __init__(self) -> None:
        self._in_flight = 0
        self._ready = False
        self._draining = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def is_ready(self) -> bool:
        return self._ready and not self._draining

    def mark_ready(self) -> None:
        self._ready = True

    def request_started(self) -> None:
        self._in_flight += 1
        self._idle.clear()

    def request_finished(self) -> None:
        self._in_flight = max(0, self._in_flight - 1)
        if self._in_flight == 0:
            self._idle.set()

    async def drain(self, *, timeout: float = 10.0) -> bool:
        """Stop reporting ready and wait for in-flight requests.

        Returns False when requests were still running after *timeout*.
        """
        self._draining = True
        if self._in_flight == 0:
            return True
        log.info("lifecycle_draining", in_flight=self._in_flight)
        try:
            async with asyncio.timeout(timeout):
                await self._idle.wait()
        except TimeoutError:
            log.warning(
                "lifecycle_drain_timeout", in_flight=self._in_flight, timeout=timeout
            )
            return False
        log.info("lifecycle_drained")
        return True
