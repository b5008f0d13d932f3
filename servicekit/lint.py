"""Static check for deprecated service API usage.

Flags `self.done()` and `self.is_done` inside class bodies and, with
`fix=True`, rewrites them to `self.stop()` and `self.stopped`.
"""

from __future__ import annotations

import ast
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

REPLACEMENTS: dict[str, str] = {
    "done": "stop",
    "is_done": "stopped",
}


@dataclass(frozen=True)
class LintFinding:
    path: str
    line: int
    col: int
    old: str
    new: str

    def format(self) -> str:
        return f"{self.path}:{self.line}:{self.col + 1}: use `{self.new}` instead of deprecated `{self.old}`"


def _is_self(node: ast.expr) -> bool:
    return isinstance(node, ast.Name) and node.id == "self"


def _deprecated_attributes(tree: ast.AST) -> Iterator[ast.Attribute]:
    for cls in ast.walk(tree):
        if not isinstance(cls, ast.ClassDef):
            continue
        for node in ast.walk(cls):
            if isinstance(node, ast.Call):
                func = node.func
                if isinstance(func, ast.Attribute) and func.attr == "done" and _is_self(func.value) and not node.args:
                    yield func
            elif isinstance(node, ast.Attribute) and node.attr == "is_done" and _is_self(node.value):
                yield node


def check_source(source: str, *, path: str = "<string>") -> list[LintFinding]:
    tree = ast.parse(source, filename=path)
    seen: set[tuple[int, int]] = set()
    findings: list[LintFinding] = []
    for node in _deprecated_attributes(tree):
        key = (node.lineno, node.col_offset)
        if key in seen:
            continue
        seen.add(key)
        findings.append(
            LintFinding(
                path=path,
                line=node.lineno,
                col=node.col_offset,
                old=f"self.{node.attr}",
                new=f"self.{REPLACEMENTS[node.attr]}",
            )
        )
    return sorted(findings, key=lambda f: (f.line, f.col))


def fix_source(source: str, *, path: str = "<string>") -> tuple[str, list[LintFinding]]:
    """Return the rewritten source and the findings that were fixed."""

    tree = ast.parse(source, filename=path)
    lines = source.splitlines(keepends=True)
    edits: list[tuple[int, int, str, str]] = []
    for node in _deprecated_attributes(tree):
        if node.end_lineno is None or node.end_col_offset is None:
            continue
        edits.append((node.end_lineno, node.end_col_offset, node.attr, REPLACEMENTS[node.attr]))

    # Offsets are UTF-8 byte columns; apply right to left so earlier ones stay valid.
    for lineno, end_col, old, new in sorted(set(edits), reverse=True):
        raw = lines[lineno - 1].encode("utf-8")
        start = end_col - len(old.encode("utf-8"))
        if raw[start:end_col] != old.encode("utf-8"):
            raise ValueError(f"{path}:{lineno}: unexpected source at column {start} (wanted {old!r})")
        lines[lineno - 1] = (raw[:start] + new.encode("utf-8") + raw[end_col:]).decode("utf-8")

    return "".join(lines), check_source(source, path=path)


def iter_python_files(paths: Iterable[str | Path]) -> Iterator[Path]:
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            yield from sorted(p for p in path.rglob("*.py") if p.is_file())
        elif path.is_file():
            yield path
        else:
            raise FileNotFoundError(f"No such file or directory: {path}")


def lint_paths(paths: Iterable[str | Path], *, fix: bool = False) -> list[LintFinding]:
    findings: list[LintFinding] = []
    for path in iter_python_files(paths):
        source = path.read_text(encoding="utf-8")
        if fix:
            fixed, found = fix_source(source, path=str(path))
            if found:
                path.write_text(fixed, encoding="utf-8")
                logger.info("Rewrote %d deprecated call(s) in %s", len(found), path)
        else:
            found = check_source(source, path=str(path))
        findings.extend(found)
    return findings
