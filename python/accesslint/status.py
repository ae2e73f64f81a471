# SPDX-License-Identifier: AGPL-3.0-only
"""Per-story sidebar status and the test-provider lifecycle.

Both stores are optional host capabilities. They are looked up once when the
controller is built; a host without them gets panel-only behaviour.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol

from .constants import PANEL_ID, RESULT_EVENT, STATUS_TYPE_ID
from .protocol import ResultEvent, parse_result_event
from .types import StatusRecord

LOGGER = logging.getLogger(__name__)

PROVIDER_IDLE = "idle"
PROVIDER_RUNNING = "running"
PROVIDER_SUCCEEDED = "succeeded"
PROVIDER_STATES = (PROVIDER_IDLE, PROVIDER_RUNNING, PROVIDER_SUCCEEDED)

STATUS_TITLE = "AccessLint"


def status_value(skipped: bool, violation_count: int, status: str | None) -> str:
    if skipped:
        return "unknown"
    if violation_count == 0:
        return "success"
    return "warning" if status == "warning" else "error"


def _plural(count: int) -> str:
    return f"{count} violation{'' if count == 1 else 's'}"


def status_description(skipped: bool, violation_count: int) -> str:
    if skipped:
        return "Skipped"
    return _plural(violation_count) if violation_count else "No violations"


def status_record(story_id: str, event: ResultEvent) -> StatusRecord:
    count = event.violation_count
    return StatusRecord(
        story_id=story_id,
        type_id=STATUS_TYPE_ID,
        value=status_value(event.skipped, count, event.status),
        title=STATUS_TITLE,
        description=status_description(event.skipped, count),
        sidebar_context_menu=True,
    )


class StatusStore:
    def __init__(self, type_id: str = STATUS_TYPE_ID) -> None:
        self.type_id = type_id
        self._records: dict[str, StatusRecord] = {}
        self._select_listeners: list[Callable[[list[str]], None]] = []

    def set(self, records: Iterable[StatusRecord]) -> None:
        for record in records:
            self._records[record.story_id] = record

    def get(self, story_id: str) -> StatusRecord | None:
        return self._records.get(story_id)

    def all(self) -> dict[str, StatusRecord]:
        return dict(self._records)

    def unset(self, story_ids: Iterable[str] | None = None) -> None:
        if story_ids is None:
            self._records.clear()
            return
        for story_id in story_ids:
            self._records.pop(story_id, None)

    def on_select(self, listener: Callable[[list[str]], None]) -> Callable[[], None]:
        self._select_listeners.append(listener)
        return lambda: self._select_listeners.remove(listener) if listener in self._select_listeners else None

    def select(self, story_ids: list[str]) -> None:
        for listener in list(self._select_listeners):
            listener(list(story_ids))


class TestProviderStore:
    __test__ = False

    def __init__(self) -> None:
        self.state = PROVIDER_IDLE
        self._clear_all_listeners: list[Callable[[], None]] = []

    def set_state(self, state: str) -> None:
        if state not in PROVIDER_STATES:
            raise ValueError(f"Unknown test provider state {state!r}")
        self.state = state

    def on_clear_all(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._clear_all_listeners.append(listener)
        return lambda: self._clear_all_listeners.remove(listener) if listener in self._clear_all_listeners else None

    def clear_all(self) -> None:
        for listener in list(self._clear_all_listeners):
            listener()


class ManagerApi(Protocol):
    def select_story(self, story_id: str) -> None:
        ...

    def set_selected_panel(self, panel_id: str) -> None:
        ...

    def toggle_panel(self, visible: bool) -> None:
        ...


@dataclass(frozen=True)
class HostCapabilities:
    status_store: StatusStore | None = None
    test_provider_store: TestProviderStore | None = None
    api: ManagerApi | None = None

    @property
    def has_test_provider(self) -> bool:
        return self.status_store is not None and self.test_provider_store is not None

    @classmethod
    def detect(cls, host: Any) -> "HostCapabilities":
        return cls(
            status_store=getattr(host, "status_store", None),
            test_provider_store=getattr(host, "test_provider_store", None),
            api=getattr(host, "api", None),
        )


class StatusController:
    def __init__(self, channel: Any, capabilities: HostCapabilities | None = None) -> None:
        self.channel = channel
        self.capabilities = capabilities or HostCapabilities()
        self.violation_count: int | None = None
        self._unsubscribe: list[Callable[[], Any]] = []

    @property
    def status_store(self) -> StatusStore | None:
        return self.capabilities.status_store if self.capabilities.has_test_provider else None

    @property
    def provider(self) -> TestProviderStore | None:
        return self.capabilities.test_provider_store if self.capabilities.has_test_provider else None

    def start(self) -> None:
        if self._unsubscribe:
            return
        self._unsubscribe.append(self.channel.on(RESULT_EVENT, self.handle_result))
        if self.status_store is not None and self.provider is not None:
            self._unsubscribe.append(self.provider.on_clear_all(self.clear_all))
            self._unsubscribe.append(self.status_store.on_select(lambda _ids: self.open_panel()))

    def stop(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    def handle_result(self, payload: Any) -> None:
        event = parse_result_event(payload)
        if event is None:
            return
        self.violation_count = event.violation_count
        if self.status_store is not None and event.story_id:
            self.status_store.set([status_record(event.story_id, event)])
        if self.provider is not None and self.provider.state == PROVIDER_RUNNING:
            self.provider.set_state(PROVIDER_SUCCEEDED)

    def clear_all(self) -> None:
        if self.status_store is not None:
            self.status_store.unset()

    def open_panel(self, story_id: str | None = None) -> None:
        api = self.capabilities.api
        if api is None:
            return
        if story_id is not None:
            api.select_story(story_id)
        api.set_selected_panel(PANEL_ID)
        api.toggle_panel(True)

    def widget_state(self) -> dict[str, Any]:
        count = self.violation_count
        if count is None:
            return {"status": "unknown", "label": f"{STATUS_TITLE}: not run yet", "count": None}
        if count:
            return {"status": "negative", "label": f"{STATUS_TITLE}: {_plural(count)}", "count": count}
        return {"status": "positive", "label": f"{STATUS_TITLE}: no violations", "count": 0}
