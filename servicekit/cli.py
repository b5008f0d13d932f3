from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

from servicekit.lint import lint_paths
from servicekit.service import Service

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="servicekit", add_help=True)
    sub = parser.add_subparsers(dest="command", required=True)

    describe = sub.add_parser("describe", help="Print the resolved plan of a service class")
    describe.add_argument("target", help="Service class as module:Class")
    describe.add_argument("--json", action="store_true", help="Emit JSON instead of text")

    lint = sub.add_parser("lint", help="Flag deprecated done()/is_done usage")
    lint.add_argument("paths", nargs="+", help="Files or directories to check")
    lint.add_argument("--fix", action="store_true", help="Rewrite to stop()/stopped in place")

    return parser


def load_service_class(target: str) -> type[Service]:
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"Expected module:Class, got {target!r}")
    obj: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        obj = getattr(obj, part)
    if not (isinstance(obj, type) and issubclass(obj, Service)):
        raise TypeError(f"{target} is not a Service subclass (type={type(obj).__name__})")
    return obj


def _render_text(description: dict[str, Any]) -> str:
    lines = [description["service"]]
    for section in ("arguments", "outputs"):
        lines.append(f"  {section}:")
        rows = description[section]
        if not rows:
            lines.append("    <none>")
        for row in rows:
            extras = ", ".join(f"{k}={v}" for k, v in row.items() if k != "name")
            lines.append(f"    {row['name']}" + (f" ({extras})" if extras else ""))
    lines.append("  steps:")
    for idx, row in enumerate(description["steps"], start=1):
        extras = ", ".join(f"{k}={v}" for k, v in row.items() if k != "name")
        lines.append(f"    {idx}. {row['name']}" + (f" ({extras})" if extras else ""))
    if description["hooks"]:
        lines.append("  hooks:")
        for row in description["hooks"]:
            lines.append(f"    {row['event']}: {row['target']}")
    lines.append("  accessors:")
    for row in description["accessors"]:
        lines.append(f"    {row}")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    if args.command == "describe":
        try:
            service_class = load_service_class(args.target)
        except (ImportError, AttributeError, TypeError, ValueError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        description = service_class.describe()
        if args.json:
            print(json.dumps(description, indent=2, default=str))
        else:
            print(_render_text(description))
        return 0

    if args.command == "lint":
        try:
            findings = lint_paths(args.paths, fix=args.fix)
        except (FileNotFoundError, SyntaxError, ValueError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        for finding in findings:
            prefix = "fixed " if args.fix else ""
            print(prefix + finding.format())
        if findings and not args.fix:
            return 1
        return 0

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
