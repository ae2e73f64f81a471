# SPDX-License-Identifier: AGPL-3.0-only
from __future__ import annotations

import logging
from typing import Any, Iterable

from .constants import HIGHLIGHT_ADD_EVENT, HIGHLIGHT_ID, HIGHLIGHT_REMOVE_EVENT
from .dom import SelectorError
from .protocol import HighlightMessage, highlight_add_payload, highlight_remove_payload, parse_highlight
from .scoping import local_selector
from .types import HighlightRequest

LOGGER = logging.getLogger(__name__)

DEFAULT_STYLE = {
    "outline": "2px dashed #d32f2f",
    "outlineOffset": "2px",
    "backgroundColor": "rgba(211, 47, 47, 0.08)",
}


def _selectors(value: str | Iterable[str] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    raw = [value] if isinstance(value, str) else list(value)
    return tuple(s for s in (local_selector(item) for item in raw) if s)


class HighlightSynchronizer:
    """Panel-side owner of the single active highlight."""

    def __init__(self, channel: Any, highlight_id: str = HIGHLIGHT_ID) -> None:
        self.channel = channel
        self.highlight_id = highlight_id
        self.active: HighlightRequest | None = None

    def activate(
        self,
        selectors: str | Iterable[str] | None,
        style: dict[str, Any] | None = None,
    ) -> HighlightRequest | None:
        # Re-derive local selectors on every send; stored ones may be stale.
        local = _selectors(selectors)
        self.deactivate()
        if not local:
            return None
        styles = {str(k): str(v) for k, v in (style or DEFAULT_STYLE).items()}
        request = HighlightRequest(id=self.highlight_id, selectors=local, style=styles)
        self.channel.emit(HIGHLIGHT_ADD_EVENT, highlight_add_payload(request))
        self.active = request
        return request

    def deactivate(self) -> None:
        self.channel.emit(HIGHLIGHT_REMOVE_EVENT, highlight_remove_payload(self.highlight_id))
        self.active = None


class HighlightOverlay:
    """Rendering-side consumer of highlight messages; at most one is active."""

    def __init__(self, document: Any = None) -> None:
        self.document = document
        self.active: HighlightMessage | None = None
        self._unsubscribe: list[Any] = []

    def attach(self, channel: Any) -> None:
        if self._unsubscribe:
            return
        self._unsubscribe = [
            channel.on(HIGHLIGHT_ADD_EVENT, self._on_add),
            channel.on(HIGHLIGHT_REMOVE_EVENT, self._on_remove),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    def _on_add(self, payload: Any) -> None:
        message = parse_highlight(payload)
        if message is None:
            return
        self.active = message if message.selectors else None

    def _on_remove(self, payload: Any) -> None:
        message = parse_highlight(payload)
        if message is None or self.active is None:
            return
        if message.id == self.active.id:
            self.active = None

    def highlighted_elements(self) -> list[Any]:
        if self.active is None or self.document is None:
            return []
        found: list[Any] = []
        for selector in self.active.selectors:
            try:
                matches = self.document.query_selector_all(selector)
            except SelectorError:
                LOGGER.debug("Highlight selector did not resolve: %s", selector)
                continue
            found.extend(m for m in matches if m not in found)
        return found
