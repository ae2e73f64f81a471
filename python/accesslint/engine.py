# SPDX-License-Identifier: AGPL-3.0-only
"""Contract for the external accessibility rule engine."""
from __future__ import annotations

import importlib
import importlib.util
import os
import sys
from typing import Any, Iterable, Mapping, Protocol, Sequence

from .types import AuditResult, Rule, Violation


class ChunkedAudit(Protocol):
    rule_count: int

    def process_chunk(self, budget_ms: float) -> bool:
        """Run one bounded slice. Returns True while more work remains."""
        ...

    def get_violations(self) -> Sequence[Violation | Mapping[str, Any]]:
        ...


class RuleEngine(Protocol):
    def run_audit(self, document: Any) -> AuditResult | Mapping[str, Any]:
        ...

    def create_chunked_audit(self, document: Any) -> ChunkedAudit:
        ...

    def get_rule_by_id(self, rule_id: str) -> Rule | Mapping[str, Any] | None:
        ...

    def configure(self, *, disabled_rules: Iterable[str]) -> None:
        ...


def load_engine(entrypoint: str) -> RuleEngine:
    """Resolve ``module:attr`` or ``path/to/file.py:attr`` to an engine.

    An attribute that is not already an engine (a class or factory function)
    is called with no arguments.
    """
    if ":" not in entrypoint:
        raise ValueError(
            f"Invalid engine entrypoint: {entrypoint}. Expected 'module:attr' or 'path/to/file.py:attr'"
        )
    module_path, attr = entrypoint.rsplit(":", 1)

    if module_path.endswith(".py") or os.path.isfile(module_path):
        spec = importlib.util.spec_from_file_location("_accesslint_engine_module", module_path)
        if spec is None or spec.loader is None:
            raise ValueError(f"Could not load module from: {module_path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules["_accesslint_engine_module"] = module
        spec.loader.exec_module(module)
    else:
        try:
            module = importlib.import_module(module_path)
        except ModuleNotFoundError as e:
            raise ValueError(f"Could not import module: {module_path}. Error: {e}")

    if not hasattr(module, attr):
        available = [n for n in dir(module) if not n.startswith("_")]
        raise ValueError(
            f"Module '{module_path}' has no attribute '{attr}'. Available: {', '.join(available[:10])}"
        )
    engine_or_factory = getattr(module, attr)
    if isinstance(engine_or_factory, type) or not hasattr(engine_or_factory, "run_audit"):
        return engine_or_factory()
    return engine_or_factory
