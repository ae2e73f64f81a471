# SPDX-License-Identifier: AGPL-3.0-only
"""AccessLint command line entrypoint.

    accesslint audit my_engine:create_engine --html story.html --root "#root"
    accesslint validate reports.json
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

from .channel import Channel
from .config import Config
from .constants import META_EVENT
from .dom import parse_html
from .engine import load_engine
from .enrich import format_violation
from .protocol import report_record_errors
from .reporting import ReportingEmitter
from .runner import AuditRunner, StoryContext


class _CollectingReporter:
    def __init__(self):
        self.reports = []

    def add_report(self, report):
        self.reports.append(report)


def _read_text(path):
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def cmd_audit(args):
    """Audit one HTML document and report violations inside --root."""
    config = Config.load(Path(args.config) if args.config else None)
    config = config.with_overrides(
        test="todo" if args.todo else None,
        budget_ms=args.budget_ms,
        chunked=False if args.single_shot else None,
        disabled_rules=[*config.disabled_rules, *(args.disable or [])],
        skip_tags=[*config.configured_skip_tags, *(args.skip_tag or [])],
    )
    entrypoint = args.engine or config.engine
    if not entrypoint:
        raise ValueError("an engine entrypoint is required (argument or 'engine' in config)")
    engine = load_engine(entrypoint)
    engine.configure(disabled_rules=config.disabled_rules)

    doc = parse_html(_read_text(args.html))
    root = None
    if args.root:
        root = doc.query_selector(args.root)
        if root is None:
            raise ValueError(f"--root selector matched nothing: {args.root}")

    channel = Channel()
    metas = []
    channel.on(META_EVENT, metas.append)
    reporter = _CollectingReporter()
    runner = AuditRunner(engine, ReportingEmitter(channel=channel, reporter=reporter), config=config)
    context = StoryContext(
        story_id=args.story_id or (Path(args.html).stem if args.html != "-" else "stdin"),
        tags=list(args.tag or []),
        canvas=root,
        document=doc,
    )
    if config.chunked:
        record = asyncio.run(runner.run(context))
    else:
        record = runner.run_sync(context)
    if record is None:
        raise RuntimeError(f"audit of {context.story_id} did not complete (see log)")

    if args.json:
        out = {
            "schema": "accesslint.cli_audit.v1",
            "ok": record.status != "failed",
            "story_id": context.story_id,
            "report": reporter.reports[-1],
            "meta": metas[-1] if metas else None,
        }
        sys.stdout.write(json.dumps(out, ensure_ascii=True) + "\n")
    elif record.skipped:
        sys.stdout.write(f"[skip] {context.story_id}: {record.result.reason}\n")
    elif not record.result.violations:
        sys.stdout.write(f"[ok] {context.story_id}: no violations ({record.result.rule_count} rules)\n")
    else:
        count = len(record.result.violations)
        sys.stdout.write(f"[{record.status}] {context.story_id}: {count} violation{'' if count == 1 else 's'}\n\n")
        sys.stdout.write("\n\n".join(format_violation(v) for v in record.result.violations) + "\n")
    return 2 if record.status == "failed" else 0


def cmd_validate(args):
    """Validate saved report records against the v1 schema."""
    data = json.loads(_read_text(args.report))
    records = data if isinstance(data, list) else [data]
    statuses = {"passed": 0, "warning": 0, "failed": 0}
    invalid = []
    for index, record in enumerate(records):
        errors = report_record_errors(record)
        if errors:
            invalid.append({"index": index, "errors": errors})
            continue
        statuses[record["status"]] += 1

    if args.json:
        out = {
            "schema": "accesslint.cli_validate.v1",
            "ok": not invalid,
            "record_count": len(records),
            "status_counts": statuses,
            "invalid": invalid,
        }
        sys.stdout.write(json.dumps(out, ensure_ascii=True) + "\n")
    else:
        for entry in invalid:
            for error in entry["errors"]:
                sys.stdout.write(f"[invalid] record {entry['index']}: {error}\n")
        summary = ", ".join(f"{k}={v}" for k, v in statuses.items())
        sys.stdout.write(f"[{'ok' if not invalid else 'error'}] {len(records)} record(s): {summary}\n")
    return 2 if invalid else 0


def _build_parser():
    parser = argparse.ArgumentParser(prog="accesslint", description="AccessLint accessibility audits")
    sub = parser.add_subparsers(dest="command", required=True)

    p_audit = sub.add_parser("audit", help="Audit an HTML document with a rule engine")
    p_audit.add_argument("engine", nargs="?", default=None, help="Engine entrypoint (module:attr or path/to/file.py:attr)")
    p_audit.add_argument("--html", required=True, help="Path to HTML file or - for stdin")
    p_audit.add_argument("--root", help="Selector of the container to scope violations to")
    p_audit.add_argument("--story-id", help="Identifier reported for this document")
    p_audit.add_argument("--tag", action="append", help="Tag of the audited unit (repeatable)")
    p_audit.add_argument("--skip-tag", action="append", help="Additional skip tag (repeatable)")
    p_audit.add_argument("--disable", action="append", help="Rule id to ignore (repeatable)")
    p_audit.add_argument("--todo", action="store_true", help="Report violations as warnings")
    p_audit.add_argument("--single-shot", action="store_true", help="Run one blocking pass instead of time slices")
    p_audit.add_argument("--budget-ms", type=float, default=None, help="Per-slice time budget")
    p_audit.add_argument("--config", help="Path to accesslint.toml or pyproject.toml")
    p_audit.add_argument("--json", action="store_true")
    p_audit.set_defaults(func=cmd_audit)

    p_validate = sub.add_parser("validate", help="Validate saved report records")
    p_validate.add_argument("report", help="JSON file with one record or a list of records, or - for stdin")
    p_validate.add_argument("--json", action="store_true")
    p_validate.set_defaults(func=cmd_validate)

    return parser


def main(argv=None):
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except Exception as exc:
        if args.json:
            err = {
                "schema": "accesslint.error.v1",
                "ok": False,
                "code": "CLI_ERROR",
                "message": str(exc),
            }
            sys.stdout.write(json.dumps(err, ensure_ascii=True) + "\n")
        else:
            sys.stderr.write(f"[error] {exc}\n")
        return 3


if __name__ == "__main__":
    raise SystemExit(main())
