from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from accesslint.config import Config
from accesslint.matchers import AccessibilityAssertionError
from accesslint.pytest_plugin import REPORT_PROPERTY, StoryAuditor, TestReporter, _load_config
from accesslint.reporting import ReportingEmitter
from accesslint.runner import AuditRunner


class FakePytestConfig:
    def __init__(self, **options) -> None:
        self.options = options

    def getoption(self, name: str):
        return self.options.get(name)


def _auditor(engine, node, config: Config | None = None) -> StoryAuditor:
    runner = AuditRunner(engine, ReportingEmitter(), config=config or Config(), clock=lambda: 0.0)
    return StoryAuditor(runner, node)


@pytest.mark.accesslint(test="todo", disabled_rules=["button-name"])
def test_marker_settings_reach_the_audit(request, make_engine, story_dom, story_violations) -> None:
    doc, root = story_dom
    auditor = _auditor(make_engine(story_violations), request.node)

    record = auditor.audit(root, doc)

    assert record.status == "warning"
    assert [v.rule_id for v in record.result.violations] == ["image-alt"]
    name, report = request.node.user_properties[-1]
    assert name == REPORT_PROPERTY
    assert report["status"] == "warning"


@pytest.mark.no_a11y
def test_skip_marker_becomes_a_skip_tag(request, make_engine, story_dom) -> None:
    doc, root = story_dom
    engine = make_engine()
    record = _auditor(engine, request.node).audit(root, doc)
    assert record.skipped
    assert engine.calls == []


@pytest.mark.accesslint(tags=["wip"])
def test_marker_tags_use_configured_skip_tags(request, make_engine, story_dom) -> None:
    doc, root = story_dom
    engine = make_engine()
    record = _auditor(engine, request.node, Config({"skip_tags": ["wip"]})).audit(root)
    assert record.result.reason == "wip"


def test_repeat_audits_get_distinct_ids(request, make_engine, story_dom) -> None:
    doc, root = story_dom
    auditor = _auditor(make_engine(), request.node, Config({"chunked": False}))
    first = auditor._context(root, doc)
    second = auditor._context(root, doc)
    assert first.story_id == request.node.nodeid
    assert second.story_id == f"{request.node.nodeid}#2"
    assert auditor.audit(root, doc).status == "passed"
    assert len(auditor.reporter.reports) == 1


def test_assert_accessible_uses_runner_engine(request, make_engine, story_dom, story_violations) -> None:
    _, root = story_dom
    auditor = _auditor(make_engine(story_violations), request.node, Config({"disabled_rules": ["button-name"]}))
    with pytest.raises(AccessibilityAssertionError) as info:
        auditor.assert_accessible(root)
    assert [v.rule_id for v in info.value.violations] == ["image-alt"]
    auditor.assert_accessible(root, disabled_rules=["image-alt"])


def test_reporter_records_on_node() -> None:
    node = SimpleNamespace(user_properties=[])
    TestReporter(node).add_report({"status": "passed"})
    assert node.user_properties == [("accesslint", {"status": "passed"})]


def test_load_config_merges_command_line_skip_tags(tmp_path) -> None:
    path = tmp_path / "accesslint.toml"
    path.write_text('skip_tags = ["wip"]\ntest = "todo"\n', encoding="utf-8")
    config = _load_config(
        FakePytestConfig(accesslint_config=str(path), accesslint_skip_tag=["flaky"])
    )
    assert config.test_mode == "todo"
    assert config.skip_tags({}) == ["no-a11y", "wip", "flaky"]


def test_load_config_keeps_string_skip_tags_whole(tmp_path) -> None:
    path = tmp_path / "accesslint.toml"
    path.write_text('skip_tags = "flaky"\n', encoding="utf-8")
    config = _load_config(FakePytestConfig(accesslint_config=str(path), accesslint_skip_tag=["wip"]))
    assert config.skip_tags({}) == ["no-a11y", "flaky", "wip"]


def test_audit_inside_running_loop_falls_back_to_single_pass(request, make_engine, story_dom) -> None:
    doc, root = story_dom
    engine = make_engine()
    auditor = _auditor(engine, request.node)

    async def main():
        return auditor.audit(root, doc)

    record = asyncio.run(main())
    assert record.status == "passed"
    assert engine.calls == ["run_audit"]


def test_audit_async_awaits_chunked_run(request, make_engine, story_dom) -> None:
    doc, root = story_dom
    engine = make_engine(slices=2)
    auditor = _auditor(engine, request.node)

    record = asyncio.run(auditor.audit_async(root, doc))
    assert record.status == "passed"
    assert engine.calls.count("chunk") == 2

    single = make_engine()
    asyncio.run(_auditor(single, request.node, Config({"chunked": False})).audit_async(root, doc))
    assert single.calls == ["run_audit"]
