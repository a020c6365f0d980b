from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from dir2llm.exceptions import SecretScanError
from dir2llm.secret_scan import GitleaksScanner

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def _fake_gitleaks(report: list[dict[str, object]]):
    def run(command: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        path = Path(command[command.index("--report-path") + 1])
        path.write_text(json.dumps(report), encoding="utf-8")
        return subprocess.CompletedProcess(command, 0, "", "")

    return run


@pytest.mark.unit
def test_scan_keeps_findings_in_requested_files(tmp_path: Path, mocker: MockerFixture) -> None:
    (tmp_path / "src").mkdir()
    wanted = tmp_path / "src" / "settings.py"
    report = [
        {"Description": "Generic API Key", "Secret": "abc", "File": str(wanted), "StartLine": 3},
        {"Description": "Other", "Secret": "zzz", "File": str(tmp_path / "src" / "skipped.py"), "StartLine": 1},
    ]
    run = mocker.patch("dir2llm.secret_scan.subprocess.run", side_effect=_fake_gitleaks(report))

    findings = GitleaksScanner().scan([wanted])

    assert len(findings) == 1
    assert findings[0].description == "Generic API Key"
    assert findings[0].line == 3
    assert findings[0].file == str(wanted.resolve())
    command = run.call_args.args[0]
    assert command[:3] == ["gitleaks", "dir", str((tmp_path / "src").resolve())]


@pytest.mark.unit
def test_scan_resolves_relative_report_paths(tmp_path: Path, mocker: MockerFixture) -> None:
    wanted = tmp_path / "a.py"
    report = [{"Description": "key", "Secret": "abc", "File": "a.py", "StartLine": 1}]
    mocker.patch("dir2llm.secret_scan.subprocess.run", side_effect=_fake_gitleaks(report))

    findings = GitleaksScanner().scan([wanted])

    assert [f.file for f in findings] == [str(wanted.resolve())]


@pytest.mark.unit
def test_scan_of_nothing_does_not_run_gitleaks(mocker: MockerFixture) -> None:
    run = mocker.patch("dir2llm.secret_scan.subprocess.run")

    assert GitleaksScanner().scan([]) == []
    run.assert_not_called()


@pytest.mark.unit
def test_scan_failure_raises(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch(
        "dir2llm.secret_scan.subprocess.run",
        side_effect=subprocess.CalledProcessError(1, ["gitleaks"], output="", stderr="boom\n"),
    )

    with pytest.raises(SecretScanError) as exc_info:
        GitleaksScanner().scan([tmp_path / "a.py"])

    assert exc_info.value.reason == "boom"


@pytest.mark.unit
def test_unreadable_report_raises(tmp_path: Path, mocker: MockerFixture) -> None:
    def run(command: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
        Path(command[command.index("--report-path") + 1]).write_text("{not json", encoding="utf-8")
        return subprocess.CompletedProcess(command, 0, "", "")

    mocker.patch("dir2llm.secret_scan.subprocess.run", side_effect=run)

    with pytest.raises(SecretScanError):
        GitleaksScanner().scan([tmp_path / "a.py"])


@pytest.mark.unit
def test_is_available_checks_path(mocker: MockerFixture) -> None:
    mocker.patch("dir2llm.secret_scan.shutil.which", return_value=None)

    assert not GitleaksScanner().is_available()
