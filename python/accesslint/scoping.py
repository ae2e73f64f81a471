# SPDX-License-Identifier: AGPL-3.0-only
from __future__ import annotations

from typing import Any, Iterable, Protocol, Sequence, TypeVar

from .dom import SelectorError

PIERCING_COMBINATOR = ">>>"
SANDBOX_STEP = "iframe>"

V = TypeVar("V")


class ScopeRoot(Protocol):
    @property
    def owner_document(self) -> Any:
        ...

    def contains(self, other: Any) -> bool:
        ...


def local_selector(selector: str) -> str:
    """Strip a ``<outer> >>> iframe> <inner>`` sandbox path down to ``<inner>``."""
    text = str(selector or "").strip()
    if PIERCING_COMBINATOR not in text:
        return text
    inner = text.rsplit(PIERCING_COMBINATOR, 1)[1].strip()
    if inner.startswith(SANDBOX_STEP):
        inner = inner[len(SANDBOX_STEP) :].strip()
    return inner


def _in_scope(selector: str, root: ScopeRoot, document: Any) -> bool:
    try:
        node = document.query_selector(local_selector(selector))
    except SelectorError:
        return False
    return node is not None and bool(root.contains(node))


def scope_violations(violations: Sequence[V], root: ScopeRoot | None) -> list[V]:
    # No root means nothing to scope against; never suppress everything.
    if root is None:
        return list(violations)
    document = getattr(root, "owner_document", None) or root
    return [v for v in violations if _in_scope(getattr(v, "selector", ""), root, document)]


def filter_disabled(violations: Sequence[V], disabled_rules: Iterable[str] | None) -> list[V]:
    disabled = {str(r) for r in (disabled_rules or ()) if str(r).strip()}
    if not disabled:
        return list(violations)
    return [v for v in violations if getattr(v, "rule_id", None) not in disabled]
