"""Heuristic detection of minified JavaScript and CSS files."""

from __future__ import annotations

import re
from pathlib import Path

from dir2llm.config import MinifiedFileThresholds
from dir2llm.logging import logger

MINIFIABLE_EXTENSIONS = frozenset({".js", ".css"})

# JavaScript
_SINGLE_CHAR_VAR = re.compile(r"\b[a-z]\b=")
_SHORT_PARAMS = re.compile(r"\([a-z],[a-z],[a-z](,[a-z])*\)")
_CONSECUTIVE_END = re.compile(r"\){4,}|\]{4,}")
_CHAINED_METHODS = re.compile(r"\.[a-zA-Z]+\([^)]*\)\.[a-zA-Z]+\([^)]*\)\.[a-zA-Z]+\(")
_LONG_OPERATORS = re.compile(r"[+\-/*&|^]{5,}")

# CSS
_NO_SPACES_AROUND_BRACKETS = re.compile(r"[^\s{][{]|[}][^\s}]")
_NO_SPACES_AFTER_COLONS = re.compile(r":[^}\s]")


def _analyze_lines(lines: list[str]) -> tuple[int, int]:
    non_blank = sum(1 for line in lines if line.strip())
    longest = max((len(line) for line in lines), default=0)
    return non_blank, longest


def is_minified(
    content: str,
    path: str,
    thresholds: MinifiedFileThresholds | None = None,
) -> bool:
    """Tell whether a normalized `.js` or `.css` file looks minified.

    General signals (a single very long line, very long lines, few lines for
    many characters) are checked first, then language specific pattern
    scores. Other extensions are never flagged.

    Args:
        content (str): the normalized file content.
        path (str): the file path, used for its extension.
        thresholds (MinifiedFileThresholds | None): tuning values, defaults when None.

    Returns:
        bool: True if the file is likely minified.
    """
    t = thresholds or MinifiedFileThresholds()
    ext = Path(path).suffix.lower()
    if ext not in MINIFIABLE_EXTENSIONS:
        return False
    if len(content) < t.min_total_chars:
        return False

    non_blank, longest = _analyze_lines(content.split("\n"))

    if (
        non_blank == 1
        and len(content) > t.single_line_min_length
        and content.count("/*") < 3  # noqa: PLR2004
        and content.count("//") < 5  # noqa: PLR2004
    ):
        logger.debug("Detected single-line minified file %s", path)
        return True

    if non_blank >= t.min_non_blank_lines:
        if longest > t.max_line_length:
            return True
        if non_blank / len(content) < t.max_lines_per_char_ratio:
            return True

    if ext == ".js":
        return _is_minified_js(content, non_blank, longest, t)
    return _is_minified_css(content, t)


def _is_minified_js(content: str, non_blank: int, longest: int, t: MinifiedFileThresholds) -> bool:
    if "sourceMappingURL" in content:
        return True

    suspicious = non_blank < t.min_non_blank_lines or longest > t.max_line_length // 2
    if not suspicious:
        return False

    score = 0
    single_char = len(_SINGLE_CHAR_VAR.findall(content))
    if single_char > t.js_single_char_var_strong:
        return True
    if single_char > t.js_single_char_var_moderate:
        score += 2
    if len(_SHORT_PARAMS.findall(content)) > t.js_short_params:
        score += 2
    if _CONSECUTIVE_END.search(content):
        score += 1
    if len(_CHAINED_METHODS.findall(content)) > t.js_chained_methods:
        score += 2
    if _LONG_OPERATORS.search(content):
        score += 1
    return score >= t.js_pattern_score


def _is_minified_css(content: str, t: MinifiedFileThresholds) -> bool:
    semicolons = content.count(";")
    spaces = content.count(" ")

    if semicolons > t.css_clear_semicolon_count and spaces < len(content) // t.css_clear_space_divisor:
        return True

    score = 0
    if semicolons > t.css_pattern_semicolon_count and spaces < len(content) // t.css_pattern_space_divisor:
        score += 2
    if len(_NO_SPACES_AROUND_BRACKETS.findall(content)) > t.css_no_spaces_around_brackets:
        score += 2
    if len(_NO_SPACES_AFTER_COLONS.findall(content)) > t.css_no_spaces_after_colons:
        score += 1
    if content.count("!important") < content.count("!important;"):
        score += 1
    return score >= t.css_pattern_score
