from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import pathspec

from dir2llm.config import (
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_IGNORED_PATH_PATTERNS,
    IGNORE_FILENAMES,
    compile_patterns,
)
from dir2llm.exceptions import TraversalError
from dir2llm.logging import logger

if TYPE_CHECKING:
    import re
    from collections.abc import Collection, Sequence


@dataclass(frozen=True)
class IgnoreRules:
    """Compiled rules of one ignore file.

    Attributes:
        base: directory holding the ignore file, relative to the walk root ("" for the root).
        spec: the compiled gitignore-style patterns.
        source: the ignore file on disk, for diagnostics.
    """

    base: str
    spec: pathspec.PathSpec
    source: Path

    def matches(self, rel_path: str, *, is_dir: bool) -> bool:
        """Check a walk-root relative path against these rules.

        Patterns are evaluated relative to `base`, the way git evaluates a
        nested `.gitignore`. Paths outside `base` never match.
        """
        if self.base:
            prefix = self.base + "/"
            if not rel_path.startswith(prefix):
                return False
            rel_path = rel_path[len(prefix) :]
        candidate = rel_path + "/" if is_dir else rel_path
        return self.spec.match_file(candidate)


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def file_extension(name: str) -> str:
    """Return the extension of a file name including the leading dot.

    Unlike `os.path.splitext`, dot-files count as pure extension, so
    `.gitignore` yields ".gitignore" and `Makefile` yields "".
    """
    idx = name.rfind(".")
    return name[idx:] if idx >= 0 else ""


def now_iso() -> str:
    """Return the current date and time in ISO 8601 format with timezone.

    Returns:
        str: the current date and time in ISO 8601 format with timezone
    """
    return datetime.now(UTC).astimezone().isoformat(timespec="seconds")


def load_ignore_rules(directory: Path, base: str) -> list[IgnoreRules]:
    """Compile the ignore files found directly in `directory`.

    Unreadable or unparseable ignore files are reported and skipped.

    Args:
        directory (Path): the directory to look into.
        base (str): `directory` relative to the walk root.

    Returns:
        list[IgnoreRules]: one entry per ignore file found, in `IGNORE_FILENAMES` order.
    """
    rules: list[IgnoreRules] = []
    for name in IGNORE_FILENAMES:
        ignore_path = directory / name
        if not ignore_path.is_file():
            continue
        try:
            lines = ignore_path.read_text(encoding="utf-8").splitlines()
            spec = pathspec.GitIgnoreSpec.from_lines(lines)
        except (OSError, UnicodeDecodeError, ValueError) as e:
            logger.warning("Error parsing ignore file at %s: %s", ignore_path, e)
            continue
        rules.append(IgnoreRules(base=base, spec=spec, source=ignore_path))
    return rules


def is_eligible(
    rel_path: str,
    *,
    is_dir: bool,
    ignore_rules: Sequence[IgnoreRules],
    allowed_extensions: Collection[str],
    ignored_patterns: Sequence[re.Pattern[str]],
) -> bool:
    """Decide whether a walk-root relative path should be kept.

    - a path matching any default ignore regex is excluded; directories are
      tested with a trailing "/" so `(^|/)name/` style patterns prune them;
    - a path matching any inherited or local ignore-file rule is excluded;
    - remaining directories are eligible for traversal;
    - remaining files are eligible if their extension is allowed.

    Args:
        rel_path (str): slash separated path relative to the walk root.
        is_dir (bool): whether the path is a directory.
        ignore_rules (Sequence[IgnoreRules]): the effective ignore-file rules.
        allowed_extensions (Collection[str]): extensions with a leading dot.
        ignored_patterns (Sequence[re.Pattern[str]]): compiled default regexes.

    Returns:
        bool: True if the path is kept (or traversed, for directories).
    """
    candidate = rel_path + "/" if is_dir else rel_path
    if any(pattern.search(candidate) for pattern in ignored_patterns):
        return False
    if any(rules.matches(rel_path, is_dir=is_dir) for rules in ignore_rules):
        return False
    if is_dir:
        return True
    return file_extension(rel_path.rsplit("/", 1)[-1]) in allowed_extensions


def walk_directory(
    root: Path,
    *,
    allowed_extensions: Collection[str] = DEFAULT_ALLOWED_EXTENSIONS,
    ignored_patterns: Sequence[re.Pattern[str]] | None = None,
    output_file: Path | None = None,
) -> list[str]:
    """Collect eligible files by walking the filesystem under `root`.

    The walk is depth-first. Within a directory, entries come in
    directory-listing order; callers that need a stable order sort later.

    Args:
        root (Path): the root directory to walk
        allowed_extensions (Collection[str]): extensions (with dot) to keep.
        ignored_patterns (Sequence[re.Pattern[str]] | None): compiled default
            ignore regexes; `DEFAULT_IGNORED_PATH_PATTERNS` when None.
        output_file (Path | None): the export destination, never returned.

    Raises:
        TraversalError: if any directory cannot be listed.

    Returns:
        list[str]: slash separated paths relative to `root`.
    """
    root = root.resolve()
    patterns = (
        compile_patterns(DEFAULT_IGNORED_PATH_PATTERNS) if ignored_patterns is None else tuple(ignored_patterns)
    )
    excluded = output_file.resolve() if output_file is not None else None
    files: list[str] = []
    _traverse(
        root,
        root,
        inherited=(),
        allowed_extensions=allowed_extensions,
        ignored_patterns=patterns,
        excluded=excluded,
        files=files,
    )
    return files


def _traverse(
    root: Path,
    directory: Path,
    *,
    inherited: tuple[IgnoreRules, ...],
    allowed_extensions: Collection[str],
    ignored_patterns: tuple[re.Pattern[str], ...],
    excluded: Path | None,
    files: list[str],
) -> None:
    base = relpath(directory, root) if directory != root else ""
    current = inherited + tuple(load_ignore_rules(directory, base))

    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as e:
        raise TraversalError(path=directory, reason=str(e)) from e

    for entry in entries:
        full_path = Path(entry.path)
        rel = f"{base}/{entry.name}" if base else entry.name
        if excluded is not None and full_path.resolve() == excluded:
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = not is_dir and entry.is_file()
        except OSError as e:
            raise TraversalError(path=full_path, reason=str(e)) from e
        if not is_dir and not is_file:
            continue
        if not is_eligible(
            rel,
            is_dir=is_dir,
            ignore_rules=current,
            allowed_extensions=allowed_extensions,
            ignored_patterns=ignored_patterns,
        ):
            continue
        if is_dir:
            _traverse(
                root,
                full_path,
                inherited=current,
                allowed_extensions=allowed_extensions,
                ignored_patterns=ignored_patterns,
                excluded=excluded,
                files=files,
            )
        else:
            files.append(rel)


def normalize_content(content: str) -> str:
    """Trim surrounding whitespace and trailing whitespace on every line.

    Args:
        content (str): raw file text.

    Returns:
        str: the normalized text.
    """
    lines = content.strip().split("\n")
    return "\n".join(line.rstrip() for line in lines)


def read_text(path: Path) -> str:
    """Read a file as UTF-8 text, undecodable bytes becoming U+FFFD.

    Raises:
        OSError: if the file cannot be read.
    """
    return path.read_bytes().decode("utf-8", errors="replace")
