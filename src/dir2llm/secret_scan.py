"""Secret detection through the `gitleaks` executable."""

from __future__ import annotations

import json
import os
import shutil
import subprocess  # noqa: S404
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from pydantic import TypeAdapter, ValidationError

from dir2llm.config import Finding
from dir2llm.exceptions import SecretScanError
from dir2llm.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

_FINDINGS = TypeAdapter(list[Finding])


class SecretScanner(Protocol):
    """Reports the secrets found in a set of files."""

    def is_available(self) -> bool: ...

    def scan(self, paths: Sequence[Path]) -> list[Finding]: ...


class GitleaksScanner:
    """Run `gitleaks dir` over the files to export and parse its JSON report."""

    def __init__(self, executable: str = "gitleaks") -> None:
        self.executable = executable

    def is_available(self) -> bool:
        """Return True if the gitleaks executable is found on PATH."""
        return shutil.which(self.executable) is not None

    def scan(self, paths: Sequence[Path]) -> list[Finding]:
        """Scan `paths` and return the findings located in them.

        gitleaks scans the deepest directory containing every path; findings
        in other files of that directory are dropped.

        Args:
            paths (Sequence[Path]): absolute file paths.

        Raises:
            SecretScanError: if gitleaks fails or writes an unreadable report.

        Returns:
            list[Finding]: findings with absolute `file` paths.
        """
        if not paths:
            return []
        wanted = {p.resolve() for p in paths}
        source = Path(os.path.commonpath([str(p.parent) for p in wanted]))

        with tempfile.TemporaryDirectory(prefix="dir2llm-") as tmp:
            report = Path(tmp) / "report.json"
            command = [
                self.executable,
                "dir",
                str(source),
                "--report-format",
                "json",
                "--report-path",
                str(report),
                "--no-banner",
                "--exit-code",
                "0",
            ]
            try:
                subprocess.run(command, text=True, capture_output=True, check=True)  # noqa: S603
                raw = json.loads(report.read_text(encoding="utf-8") or "[]")
                findings = _FINDINGS.validate_python(raw)
            except subprocess.CalledProcessError as e:
                raise SecretScanError(reason=(e.stderr or str(e)).strip()) from e
            except (OSError, ValueError, ValidationError) as e:
                raise SecretScanError(reason=str(e)) from e

        located: list[Finding] = []
        for finding in findings:
            file = Path(finding.file)
            if not file.is_absolute():
                file = source / file
            file = file.resolve()
            if file in wanted:
                located.append(finding.model_copy(update={"file": str(file)}))
        logger.info("Secret scan of %d files reported %d findings", len(wanted), len(located))
        return located
