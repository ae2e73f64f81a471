# SPDX-License-Identifier: AGPL-3.0-only
from __future__ import annotations

from typing import Any, Callable, Sequence

from .constants import RESULT_EVENT
from .highlight import HighlightSynchronizer
from .protocol import ResultEvent, parse_result_event
from .types import EnrichedViolation

# critical and serious share a rank; ties keep input order.
IMPACT_RANK = {"critical": 0, "serious": 0, "moderate": 1, "minor": 2}


def sort_violations(violations: Sequence[EnrichedViolation]) -> list[EnrichedViolation]:
    return sorted(violations, key=lambda v: IMPACT_RANK.get(v.impact, len(IMPACT_RANK)))


class PanelModel:
    def __init__(self, highlighter: HighlightSynchronizer | None = None, story_id: str | None = None) -> None:
        self.highlighter = highlighter
        self.story_id = story_id
        self.violations: list[EnrichedViolation] = []
        self.skipped = False
        self.skip_reason: str | None = None
        self.expanded: int | None = None
        self.focused = 0
        self._unsubscribe: Callable[[], Any] | None = None

    def attach(self, channel: Any) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = channel.on(RESULT_EVENT, self.handle_result)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def select_story(self, story_id: str | None) -> None:
        if story_id == self.story_id:
            return
        self.story_id = story_id
        self.update(ResultEvent(story_id=story_id, status=None, skipped=False))

    def handle_result(self, payload: Any) -> None:
        event = parse_result_event(payload)
        if event is None:
            return
        if self.story_id is not None and event.story_id not in (None, self.story_id):
            return
        self.update(event)

    def update(self, event: ResultEvent) -> None:
        self._collapse()
        self.skipped = event.skipped
        self.skip_reason = event.reason
        self.violations = [] if event.skipped else sort_violations(event.violations)
        self.focused = 0

    @property
    def count(self) -> int:
        return len(self.violations)

    @property
    def title(self) -> str:
        return f"AccessLint ({self.count})" if self.count else "AccessLint"

    def _collapse(self) -> None:
        if self.expanded is not None and self.highlighter is not None:
            self.highlighter.deactivate()
        self.expanded = None

    def toggle(self, index: int) -> None:
        if not 0 <= index < self.count:
            raise IndexError(f"No violation at index {index}")
        if self.expanded == index:
            self._collapse()
            return
        # Single expansion: the new row supersedes the old row and its highlight.
        self.expanded = index
        self.focused = index
        if self.highlighter is not None:
            self.highlighter.activate(self.violations[index].selector)

    def _focus(self, index: int) -> int:
        if self.count:
            self.focused = max(0, min(index, self.count - 1))
        return self.focused

    def next(self) -> int:
        return self._focus(self.focused + 1)

    def prev(self) -> int:
        return self._focus(self.focused - 1)

    def first(self) -> int:
        return self._focus(0)

    def last(self) -> int:
        return self._focus(self.count - 1)
