"""
CDPSession: raw protocol escape hatch for capabilities the structured action
surface does not cover.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..core.errors import ProtocolError
from ..io.driver import CDPChannel

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Any]


class CDPSession:
    def __init__(self, channel: CDPChannel) -> None:
        self._channel = channel
        self._detached = False

    @property
    def detached(self) -> bool:
        return self._detached

    async def send(self, method: str, params: dict[str, Any] | None = None) -> Any:
        if self._detached:
            raise ProtocolError("cdp.send", "session is detached", details={"method": method})
        logger.debug("cdp send %s", method)
        try:
            return await self._channel.send(method, params or {})
        except ProtocolError:
            raise
        except Exception as e:  # noqa: BLE001
            raise ProtocolError(
                "cdp.send",
                "protocol call failed",
                details={"method": method, "cause": repr(e)},
                cause=e,
            ) from e

    def on(self, event: str, handler: EventHandler) -> None:
        self._channel.on(event, handler)

    def off(self, event: str, handler: EventHandler) -> None:
        self._channel.remove_listener(event, handler)

    async def detach(self) -> None:
        if self._detached:
            return
        self._detached = True
        try:
            await self._channel.detach()
        except Exception as e:  # noqa: BLE001
            raise ProtocolError("cdp.detach", "failed to detach session", cause=e) from e
