# SPDX-License-Identifier: AGPL-3.0-only
from __future__ import annotations

import json
import logging
from typing import Any, Callable

LOGGER = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class Channel:
    """Ordered, fire-and-forget message bus between rendering and panel code.

    Payloads are JSON-encoded once per emit and every handler receives its own
    decoded copy, so nothing live is shared across the boundary.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        self._handlers.setdefault(event, []).append(handler)
        return lambda: self.off(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def emit(self, event: str, payload: Any = None) -> None:
        encoded = json.dumps(payload)
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(json.loads(encoded))
            except Exception:
                LOGGER.exception("Handler for %s failed.", event)
