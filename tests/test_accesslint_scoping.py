from __future__ import annotations

from accesslint.dom import el
from accesslint.scoping import filter_disabled, local_selector, scope_violations


def test_local_selector_strips_sandbox_prefix() -> None:
    assert local_selector("#preview >>> iframe> #root > button") == "#root > button"
    assert local_selector("  .plain  ") == ".plain"
    assert local_selector("#outer >>> iframe> #mid >>> iframe> main img") == "main img"


def test_scope_keeps_only_violations_inside_root(story_dom, story_violations) -> None:
    _, root = story_dom
    scoped = scope_violations(story_violations, root)
    assert [v.rule_id for v in scoped] == ["image-alt", "button-name"]


def test_scoping_is_idempotent(story_dom, story_violations) -> None:
    _, root = story_dom
    once = scope_violations(story_violations, root)
    assert scope_violations(once, root) == once


def test_missing_root_returns_unfiltered_list(story_violations) -> None:
    scoped = scope_violations(story_violations, None)
    assert scoped == story_violations
    assert scoped is not story_violations


def test_detached_root_excludes_everything(story_violations) -> None:
    lonely = el("div", id="root")
    assert scope_violations(story_violations, lonely) == []


def test_filter_disabled_rules(story_violations) -> None:
    kept = filter_disabled(story_violations, ["image-alt", " "])
    assert "image-alt" not in {v.rule_id for v in kept}
    assert len(kept) == 3
    assert filter_disabled(story_violations, None) == story_violations
