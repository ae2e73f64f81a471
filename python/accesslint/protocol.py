# SPDX-License-Identifier: AGPL-3.0-only
"""Message shapes exchanged over the channel.

Several independent consumers read the same channel, so parsing never raises:
payloads that do not validate against the bundled schemas come back as None.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.exceptions import best_match

from .constants import REPORT_TYPE, REPORT_VERSION
from .types import AuditMeta, EnrichedViolation, HighlightRequest, ReportRecord

LOGGER = logging.getLogger(__name__)


def _schemas() -> Path:
    return Path(__file__).resolve().parent / "schemas"


@lru_cache(maxsize=None)
def _validator(name: str) -> jsonschema.Draft202012Validator:
    schema = json.loads((_schemas() / name).read_text(encoding="utf-8"))
    return jsonschema.Draft202012Validator(schema)


def _first_error(name: str, payload: Any) -> str | None:
    error = best_match(_validator(name).iter_errors(payload))
    return None if error is None else error.message


@dataclass(frozen=True)
class ResultEvent:
    story_id: str | None
    status: str | None
    skipped: bool
    reason: str | None = None
    violations: tuple[EnrichedViolation, ...] = ()
    rule_count: int = 0

    @property
    def violation_count(self) -> int:
        return 0 if self.skipped else len(self.violations)


@dataclass(frozen=True)
class HighlightMessage:
    id: str
    selectors: tuple[str, ...] = ()
    style: dict[str, str] = field(default_factory=dict)


def result_event_payload(record: ReportRecord, story_id: str | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"result": record.result.to_dict(), "status": record.status}
    if story_id:
        payload["storyId"] = story_id
    return payload


def meta_event_payload(meta: AuditMeta) -> dict[str, Any]:
    return meta.to_dict()


def highlight_add_payload(request: HighlightRequest) -> dict[str, Any]:
    return request.to_dict()


def highlight_remove_payload(highlight_id: str) -> dict[str, Any]:
    return {"id": highlight_id}


def parse_result_event(payload: Any) -> ResultEvent | None:
    error = _first_error("result_event.v1.schema.json", payload)
    if error is not None:
        LOGGER.debug("Ignoring malformed result event: %s", error)
        return None
    result = payload["result"]
    if result.get("skipped"):
        return ResultEvent(
            story_id=payload.get("storyId"),
            status=payload.get("status"),
            skipped=True,
            reason=result.get("reason"),
        )
    return ResultEvent(
        story_id=payload.get("storyId"),
        status=payload.get("status"),
        skipped=False,
        violations=tuple(EnrichedViolation.from_dict(v) for v in result["violations"]),
        rule_count=int(result.get("ruleCount", 0)),
    )


def parse_report_record(payload: Any) -> ResultEvent | None:
    error = _first_error("report_record.v1.schema.json", payload)
    if error is not None:
        LOGGER.debug("Ignoring malformed report record: %s", error)
        return None
    if payload["type"] != REPORT_TYPE or payload["version"] != REPORT_VERSION:
        LOGGER.debug("Ignoring report record version %s.", payload["version"])
        return None
    return parse_result_event({"result": payload["result"], "status": payload["status"]})


def report_record_errors(payload: Any) -> list[str]:
    errors = [e.message for e in _validator("report_record.v1.schema.json").iter_errors(payload)]
    if errors:
        return errors
    if payload["version"] != REPORT_VERSION:
        return [f"unsupported report version {payload['version']} (expected {REPORT_VERSION})"]
    inner = {"result": payload["result"], "status": payload["status"]}
    return [e.message for e in _validator("result_event.v1.schema.json").iter_errors(inner)]


def parse_highlight(payload: Any) -> HighlightMessage | None:
    error = _first_error("highlight.v1.schema.json", payload)
    if error is not None:
        LOGGER.debug("Ignoring malformed highlight message: %s", error)
        return None
    return HighlightMessage(
        id=payload["id"],
        selectors=tuple(payload.get("selectors") or ()),
        style=dict(payload.get("styles") or payload.get("style") or {}),
    )
