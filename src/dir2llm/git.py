"""Commit-frequency ordering backed by the `git` executable."""

from __future__ import annotations

import shutil
import subprocess  # noqa: S404
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING

from dir2llm.exceptions import Dir2LLMError, GitCommandError, NotAGitRepositoryError, RankError
from dir2llm.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    CommitCounter = Callable[[Path], dict[str, int]]

GIT_LOG_COMMAND = (
    "log",
    "--name-only",
    "-n",
    "99999",
    "--pretty=format:",
    "--no-merges",
    "--relative",
)


def git_available() -> bool:
    """Return True if the `git` executable is found on PATH."""
    return shutil.which("git") is not None


def find_repository_root(start: Path) -> Path:
    """Find the nearest directory holding a `.git` directory, searching upward.

    Args:
        start (Path): starting directory.

    Raises:
        NotAGitRepositoryError: if no `.git` directory exists in `start` or its parents.

    Returns:
        Path: the repository root.
    """
    current = start.resolve()
    while True:
        if (current / ".git").is_dir():
            return current
        if current.parent == current:
            raise NotAGitRepositoryError(folder=start)
        current = current.parent


def parse_commit_counts(output: str) -> dict[str, int]:
    """Count how many times each path appears in `git log --name-only` output."""
    return dict(Counter(line.strip() for line in output.splitlines() if line.strip()))


def git_commit_counts(repo: Path) -> dict[str, int]:
    """Count, over the full history, the commits touching each path of `repo`.

    Merge commits are skipped and every commit counts once per path.

    Args:
        repo (Path): the root of the git repository to query

    Raises:
        GitCommandError: if `git log` exits with an error.

    Returns:
        dict[str, int]: commit count per path relative to `repo`.
    """
    command = ["git", "-C", str(repo), *GIT_LOG_COMMAND]
    try:
        out = subprocess.run(  # noqa: S603
            command,
            text=True,
            capture_output=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        raise GitCommandError(
            command=" ".join(command),
            returncode=e.returncode,
            stdout=e.stdout or "",
            stderr=e.stderr or "",
        ) from e
    return parse_commit_counts(out.stdout)


def rank_by_commit_frequency(
    repo: Path,
    paths: Sequence[str],
    commit_counter: CommitCounter,
    *,
    base_dir: Path | None = None,
) -> list[str]:
    """Order paths by ascending commit count, ties broken alphabetically.

    Rarely changed files come first. Paths unknown to the counter count as 0.

    Args:
        repo (Path): the repository root handed to `commit_counter`.
        paths (Sequence[str]): paths relative to `base_dir` (or `repo` when None).
        commit_counter (CommitCounter): returns commit counts keyed by repo-relative path.
        base_dir (Path | None): the walk root, when it lies below `repo`.

    Raises:
        RankError: if the commit counter fails.

    Returns:
        list[str]: a new, reordered list of the same paths.
    """
    try:
        counts = commit_counter(repo)
    except (Dir2LLMError, OSError) as e:
        raise RankError(repo=repo, reason=str(e)) from e

    prefix = ""
    if base_dir is not None:
        try:
            sub = base_dir.resolve().relative_to(repo.resolve()).as_posix()
        except ValueError:
            sub = ""
        prefix = "" if sub in {"", "."} else sub + "/"

    return sorted(paths, key=lambda p: (counts.get(prefix + p, 0), p))


def sort_by_commit_frequency(
    target_dir: Path,
    paths: Sequence[str],
    commit_counter: CommitCounter = git_commit_counts,
) -> list[str]:
    """Rank `paths` when `target_dir` sits in a git repository, else keep walk order.

    Missing git, a missing repository or a failing `git log` only produce a
    warning; this step never aborts an export.
    """
    if not git_available():
        logger.warning("git executable not found, skipping commit frequency file sorting")
        return list(paths)
    try:
        repo = find_repository_root(target_dir)
    except NotAGitRepositoryError as e:
        logger.warning("Git repository not found, skipping commit frequency file sorting: %s", e)
        return list(paths)

    logger.info("Found Git repository at %s, sorting files by commit frequency", repo)
    try:
        return rank_by_commit_frequency(repo, paths, commit_counter, base_dir=target_dir)
    except RankError as e:
        logger.warning("Keeping walk order: %s", e)
        return list(paths)
