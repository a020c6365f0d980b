import subprocess
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from dir2llm.exceptions import GitCommandError, NotAGitRepositoryError, RankError
from dir2llm.git import (
    GIT_LOG_COMMAND,
    find_repository_root,
    git_commit_counts,
    parse_commit_counts,
    rank_by_commit_frequency,
    sort_by_commit_frequency,
)


def _counter(counts: dict[str, int]):
    def count(repo: Path) -> dict[str, int]:
        return dict(counts)

    return count


@pytest.mark.unit
def test_rank_orders_by_ascending_commit_count(tmp_path: Path) -> None:
    counts = {"hot.py": 12, "warm.py": 3, "cold.py": 1}

    ranked = rank_by_commit_frequency(tmp_path, ["hot.py", "cold.py", "warm.py"], _counter(counts))

    assert ranked == ["cold.py", "warm.py", "hot.py"]


@pytest.mark.unit
def test_rank_breaks_ties_alphabetically_and_counts_unknown_as_zero(tmp_path: Path) -> None:
    counts = {"b.py": 2, "a.py": 2}

    ranked = rank_by_commit_frequency(tmp_path, ["b.py", "new.py", "a.py", "another.py"], _counter(counts))

    assert ranked == ["another.py", "new.py", "a.py", "b.py"]


@pytest.mark.unit
def test_rank_is_idempotent_and_keeps_every_path(tmp_path: Path) -> None:
    counts = {"x/y.py": 5, "z.py": 1}
    paths = ["x/y.py", "z.py", "w.py"]

    once = rank_by_commit_frequency(tmp_path, paths, _counter(counts))
    twice = rank_by_commit_frequency(tmp_path, once, _counter(counts))

    assert once == twice
    assert sorted(once) == sorted(paths)
    assert paths == ["x/y.py", "z.py", "w.py"]


@pytest.mark.unit
def test_rank_translates_paths_below_the_repository_root(tmp_path: Path) -> None:
    sub = tmp_path / "pkg"
    sub.mkdir()
    counts = {"pkg/a.py": 9, "pkg/b.py": 1, "a.py": 0}

    ranked = rank_by_commit_frequency(tmp_path, ["a.py", "b.py"], _counter(counts), base_dir=sub)

    assert ranked == ["b.py", "a.py"]


@pytest.mark.unit
def test_rank_wraps_counter_failures(tmp_path: Path) -> None:
    def failing(repo: Path) -> dict[str, int]:
        raise GitCommandError(command="git log", returncode=128, stdout="", stderr="fatal")

    with pytest.raises(RankError) as exc_info:
        rank_by_commit_frequency(tmp_path, ["a.py"], failing)

    assert exc_info.value.repo == tmp_path
    assert isinstance(exc_info.value.__cause__, GitCommandError)


@pytest.mark.unit
def test_parse_commit_counts_skips_blank_lines() -> None:
    output = "a.py\nb.py\n\na.py\n\n\nsrc/c.py\n"

    assert parse_commit_counts(output) == {"a.py": 2, "b.py": 1, "src/c.py": 1}


@pytest.mark.unit
def test_git_commit_counts_runs_git_log(tmp_path: Path, mocker: MockerFixture) -> None:
    run = mocker.patch(
        "dir2llm.git.subprocess.run",
        return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout="a.py\nb.py\n\na.py\n", stderr=""),
    )

    assert git_commit_counts(tmp_path) == {"a.py": 2, "b.py": 1}
    command = run.call_args.args[0]
    assert command[:3] == ["git", "-C", str(tmp_path)]
    assert tuple(command[3:]) == GIT_LOG_COMMAND


@pytest.mark.unit
def test_git_commit_counts_raises_on_failure(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch(
        "dir2llm.git.subprocess.run",
        side_effect=subprocess.CalledProcessError(128, ["git"], output="", stderr="not a git repository"),
    )

    with pytest.raises(GitCommandError) as exc_info:
        git_commit_counts(tmp_path)

    assert exc_info.value.returncode == 128
    assert exc_info.value.stderr == "not a git repository"


@pytest.mark.unit
def test_find_repository_root_searches_upward(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert find_repository_root(nested) == tmp_path.resolve()


@pytest.mark.unit
def test_find_repository_root_raises_outside_a_repository(tmp_path: Path, mocker: MockerFixture) -> None:
    real_is_dir = Path.is_dir
    mocker.patch.object(Path, "is_dir", lambda self: self.name != ".git" and real_is_dir(self))

    with pytest.raises(NotAGitRepositoryError):
        find_repository_root(tmp_path)


@pytest.mark.unit
def test_sort_keeps_walk_order_without_git(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch("dir2llm.git.git_available", return_value=False)
    counter = mocker.Mock()

    assert sort_by_commit_frequency(tmp_path, ["b.py", "a.py"], counter) == ["b.py", "a.py"]
    counter.assert_not_called()


@pytest.mark.unit
def test_sort_ranks_inside_a_repository(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch("dir2llm.git.git_available", return_value=True)
    (tmp_path / ".git").mkdir()

    ranked = sort_by_commit_frequency(tmp_path, ["b.py", "a.py"], _counter({"a.py": 4, "b.py": 1}))

    assert ranked == ["b.py", "a.py"]


@pytest.mark.unit
def test_sort_keeps_walk_order_when_git_log_fails(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch("dir2llm.git.git_available", return_value=True)
    (tmp_path / ".git").mkdir()
    counter = mocker.Mock(side_effect=GitCommandError(command="git log", returncode=1, stdout="", stderr=""))

    assert sort_by_commit_frequency(tmp_path, ["b.py", "a.py"], counter) == ["b.py", "a.py"]
