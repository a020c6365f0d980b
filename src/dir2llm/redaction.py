from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from dir2llm.config import Finding, RedactionContext

PLACEHOLDER = "[REDACTED SECRET: {description}]"


def placeholder(finding: Finding) -> str:
    """Return the text that replaces a finding's secret."""
    return PLACEHOLDER.format(description=finding.description)


def _longest_first(findings: Iterable[Finding]) -> list[Finding]:
    return sorted((f for f in findings if f.secret), key=lambda f: len(f.secret), reverse=True)


def _replace_all(text: str, findings: Iterable[Finding]) -> str:
    for finding in _longest_first(findings):
        text = text.replace(finding.secret, placeholder(finding))
    return text


def redact_secrets(content: str, findings: Sequence[Finding]) -> str:
    """Replace every finding's literal secret with a placeholder.

    Findings carrying a line number only touch that (1-based) line; the
    others are replaced across the whole content. Longer secrets are applied
    first so a shorter secret cannot match inside a longer one. Any other
    occurrence of the same literal on a targeted line or in the content is
    also redacted.

    Args:
        content (str): the text to redact.
        findings (Sequence[Finding]): the findings for this text.

    Returns:
        str: the redacted text; a trailing newline is preserved.
    """
    located = [f for f in findings if f.line > 0]
    unlocated = [f for f in findings if f.line <= 0]

    if not located:
        return _replace_all(content, unlocated)

    by_line: dict[int, list[Finding]] = {}
    for finding in located:
        by_line.setdefault(finding.line, []).append(finding)

    lines = content.split("\n")
    for number, line_findings in by_line.items():
        if number <= len(lines):
            lines[number - 1] = _replace_all(lines[number - 1], line_findings)

    return _replace_all("\n".join(lines), unlocated)


def findings_for_file(context: RedactionContext | None, rel_path: str) -> list[Finding]:
    """Select the findings located in `rel_path`.

    The relative path is resolved against the context's base directory and
    compared with each finding's absolute `file`.

    Args:
        context (RedactionContext | None): the redaction scope.
        rel_path (str): slash separated path relative to `context.base_dir`.

    Returns:
        list[Finding]: the matching findings, empty when `context` is None.
    """
    if context is None:
        return []
    target = (context.base_dir / rel_path).resolve()
    return [f for f in context.findings if f.file and Path(f.file).resolve() == target]
