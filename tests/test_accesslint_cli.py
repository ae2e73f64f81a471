from __future__ import annotations

import io
import json

import pytest

from accesslint.cli import main

ENGINE_SOURCE = '''
VIOLATIONS = [
    {"ruleId": "image-alt", "selector": "#logo", "html": "<img>", "impact": "critical", "message": "Image has no alt"},
    {"ruleId": "link-name", "selector": "#skip", "html": "<a>", "impact": "minor", "message": "Link has no name"},
]
RULES = {"image-alt": {"id": "image-alt", "description": "Images need alt text", "level": "A", "wcag": ["1.1.1"]}}


class _Audit:
    rule_count = 4

    def __init__(self, violations):
        self._violations = violations

    def process_chunk(self, budget_ms):
        return False

    def get_violations(self):
        return self._violations


class Engine:
    def __init__(self):
        self.disabled = []

    def configure(self, *, disabled_rules):
        self.disabled = list(disabled_rules)

    def _violations(self):
        return [v for v in VIOLATIONS if v["ruleId"] not in self.disabled]

    def run_audit(self, document):
        return {"violations": self._violations(), "ruleCount": 4}

    def create_chunked_audit(self, document):
        return _Audit(self._violations())

    def get_rule_by_id(self, rule_id):
        return RULES.get(rule_id)
'''

HTML = (
    '<html><body><div id="root"><img id="logo" src="logo.png"><button class="icon"></button></div>'
    '<a id="skip" href="#"></a></body></html>'
)


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("ACCESSLINT_SKIP_TAGS", raising=False)
    (tmp_path / "rules_engine.py").write_text(ENGINE_SOURCE, encoding="utf-8")
    (tmp_path / "card.html").write_text(HTML, encoding="utf-8")
    return tmp_path


def _audit(workspace, *extra: str) -> list[str]:
    return ["audit", f"{workspace / 'rules_engine.py'}:Engine", "--html", str(workspace / "card.html"), *extra]


def test_audit_json_reports_scoped_violations(workspace, capsys) -> None:
    code = main(_audit(workspace, "--root", "#root", "--json"))
    out = json.loads(capsys.readouterr().out)

    assert code == 2
    assert out["schema"] == "accesslint.cli_audit.v1"
    assert out["ok"] is False
    assert out["story_id"] == "card"
    assert out["report"]["status"] == "failed"
    assert [v["ruleId"] for v in out["report"]["result"]["violations"]] == ["image-alt"]
    assert out["report"]["result"]["violations"][0]["wcag"] == ["1.1.1"]
    assert out["meta"]["passed"] == 3


def test_audit_without_root_sees_whole_document(workspace, capsys) -> None:
    assert main(_audit(workspace, "--single-shot")) == 2
    out = capsys.readouterr().out
    assert out.startswith("[failed] card: 2 violations\n")
    assert "  image-alt [A] (1.1.1): Image has no alt\n    #logo" in out


def test_audit_todo_and_disable(workspace, capsys) -> None:
    assert main(_audit(workspace, "--root", "#root", "--todo")) == 0
    assert capsys.readouterr().out.startswith("[warning] card: 1 violation\n")

    assert main(_audit(workspace, "--root", "#root", "--disable", "image-alt")) == 0
    assert capsys.readouterr().out == "[ok] card: no violations (4 rules)\n"


def test_audit_skip_tags(workspace, capsys) -> None:
    assert main(_audit(workspace, "--tag", "no-a11y")) == 0
    assert capsys.readouterr().out == "[skip] card: no-a11y\n"

    assert main(_audit(workspace, "--tag", "wip", "--skip-tag", "wip", "--story-id", "card--wip")) == 0
    assert capsys.readouterr().out == "[skip] card--wip: wip\n"


def test_engine_from_config_file(workspace, capsys) -> None:
    (workspace / "accesslint.toml").write_text(
        f'engine = "{(workspace / "rules_engine.py").as_posix()}:Engine"\ndisabled_rules = ["link-name"]\n',
        encoding="utf-8",
    )
    assert main(["audit", "--html", str(workspace / "card.html")]) == 2
    assert capsys.readouterr().out.startswith("[failed] card: 1 violation\n")


def test_audit_errors_exit_3(workspace, capsys) -> None:
    assert main(["audit", "--html", str(workspace / "card.html"), "--json"]) == 3
    err = json.loads(capsys.readouterr().out)
    assert err["schema"] == "accesslint.error.v1"
    assert "engine entrypoint" in err["message"]

    assert main(_audit(workspace, "--root", "#missing")) == 3
    assert "--root selector matched nothing" in capsys.readouterr().err

    assert main(["audit", "not-an-entrypoint", "--html", str(workspace / "card.html")]) == 3


def test_validate_reports(workspace, capsys) -> None:
    good = {"type": "accesslint", "version": 1, "status": "passed", "result": {"skipped": True, "reason": "no-a11y"}}
    warn = {"type": "accesslint", "version": 1, "status": "warning", "result": {"violations": [], "ruleCount": 2}}
    bad = {"type": "accesslint", "version": 2, "status": "passed", "result": {"violations": []}}
    path = workspace / "reports.json"

    path.write_text(json.dumps([good, warn]), encoding="utf-8")
    assert main(["validate", str(path)]) == 0
    assert capsys.readouterr().out == "[ok] 2 record(s): passed=1, warning=1, failed=0\n"

    path.write_text(json.dumps([good, bad]), encoding="utf-8")
    assert main(["validate", str(path), "--json"]) == 2
    out = json.loads(capsys.readouterr().out)
    assert out["ok"] is False
    assert out["record_count"] == 2
    assert out["invalid"] == [{"index": 1, "errors": ["unsupported report version 2 (expected 1)"]}]


def test_validate_single_record_from_stdin(monkeypatch, capsys) -> None:
    record = {"type": "accesslint", "version": 1, "status": "failed", "result": {"violations": []}}
    monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(record)))
    assert main(["validate", "-"]) == 0
    assert "failed=1" in capsys.readouterr().out


def test_string_skip_tags_in_config_are_one_tag(workspace, capsys) -> None:
    (workspace / "accesslint.toml").write_text('skip_tags = "flaky"\n', encoding="utf-8")

    assert main(_audit(workspace, "--tag", "flaky", "--single-shot", "--json")) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["report"]["result"] == {"skipped": True, "reason": "flaky"}

    assert main(_audit(workspace, "--root", "#root", "--tag", "a", "--single-shot")) == 2
    assert capsys.readouterr().out.startswith("[failed] card: 1 violation\n")
