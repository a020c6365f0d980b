"""
dir2llm — Convert a directory into a single document for an LLM.

Overview
--------
Walks a target directory, keeps the files whose extension is allowed and
that no ignore rule excludes (default regexes, nested `.gitignore` and
`.dir2llmignore` files), orders them by ascending commit frequency when the
directory lives in a Git repository, and writes them as one Markdown, XML or
plaintext document.

Before writing, files are scanned for secrets with `gitleaks` when it is
installed: by default the run fails on findings, `--redact-secrets` replaces
them with placeholders and `--ignore-secrets` skips the scan. Large, minified
or token-heavy files are reported on stderr but still included.

Usage
-----
Run `dir2llm --help` for full options. Common examples:
    - Markdown to stdout:
        dir2llm path/to/project
    - XML file, overwriting a previous export:
        dir2llm path/to/project --output export.xml --force
    - Redact secrets and skip tokenization:
        dir2llm . -o out.md --redact-secrets --skip-token-count
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from dir2llm import __version__
from dir2llm.config import (
    OutputFormat,
    RedactionContext,
    SecretsMode,
    SerializationConfig,
    compile_patterns,
    load_project_config,
    normalize_format,
)
from dir2llm.exceptions import (
    Dir2LLMError,
    OutputExistsError,
    SecretScanError,
    SecretsDetectedError,
    TargetDirectoryError,
)
from dir2llm.file_manipulation import walk_directory
from dir2llm.git import git_commit_counts, sort_by_commit_frequency
from dir2llm.logging import logger, setup_logging
from dir2llm.output_construction import new_serializer
from dir2llm.secret_scan import GitleaksScanner
from dir2llm.settings import Settings
from dir2llm.tokens import TokenCounter, TokenCountingWriter

if TYPE_CHECKING:
    from collections.abc import Sequence
    from typing import TextIO

    from dir2llm.git import CommitCounter
    from dir2llm.output_construction import Serializer
    from dir2llm.secret_scan import SecretScanner
    from dir2llm.tokens import Counter

SUFFIX_FORMATS = {
    ".md": OutputFormat.MARKDOWN,
    ".markdown": OutputFormat.MARKDOWN,
    ".xml": OutputFormat.XML,
    ".txt": OutputFormat.TEXT,
}


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    p = argparse.ArgumentParser(
        prog="dir2llm",
        description="Convert a directory to content suitable for LLM interpretation.",
    )
    p.add_argument("target_dir", nargs="?", type=Path, default=None, help="Directory to export.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-o", "--output", type=Path, default=None, help="Output file path (default: stdout).")
    p.add_argument("-f", "--force", action="store_true", help="Overwrite existing file without prompt.")
    p.add_argument("--no-tree", action="store_true", help="Do not include the directory tree.")
    p.add_argument("--no-sort", action="store_true", help="Do not sort files by commit frequency.")
    p.add_argument("--ignore-secrets", action="store_true", help="Do not scan files for secrets.")
    p.add_argument(
        "--redact-secrets",
        action="store_true",
        help="Replace detected secrets with placeholders instead of failing.",
    )
    p.add_argument("--skip-token-count", action="store_true", help="Do not count tokens.")
    p.add_argument(
        "--format",
        type=str,
        default=None,
        help="Output format: md, xml or txt (default: from output suffix, else md).",
    )
    p.add_argument(
        "--high-token-threshold",
        type=int,
        default=None,
        help="Warn for files above this many tokens (0 disables).",
    )
    p.add_argument(
        "--large-file-threshold",
        type=int,
        default=None,
        help="Warn for files above this many bytes (0 disables).",
    )
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    args = p.parse_args(argv)
    return Settings(**{k: v for k, v in vars(args).items() if v is not None})


def resolve_format(settings: Settings) -> OutputFormat:
    """Pick the output format: explicit flag, then output suffix, then Markdown."""
    if settings.format.strip():
        return normalize_format(settings.format)
    if settings.output is not None:
        return SUFFIX_FORMATS.get(settings.output.suffix.lower(), OutputFormat.MARKDOWN)
    return OutputFormat.MARKDOWN


def scan_for_secrets(
    settings: Settings,
    target: Path,
    files: Sequence[str],
    scanner: SecretScanner,
) -> RedactionContext | None:
    """Run the secret scanner according to the secrets mode.

    In the default (fail) mode a missing or failing scanner only warns; in
    redact mode it is fatal.

    Raises:
        SecretsDetectedError: if secrets are found in the default (fail) mode.
        SecretScanError: if the scanner is missing or fails in redact mode.

    Returns:
        RedactionContext | None: the redaction scope when secrets must be redacted.
    """
    mode = settings.secrets_mode
    if mode is SecretsMode.IGNORE:
        return None
    if not scanner.is_available():
        if mode is SecretsMode.REDACT:
            raise SecretScanError(reason="gitleaks executable not found, cannot redact secrets")
        logger.warning("gitleaks executable not found, skipping secret detection")
        return None
    try:
        findings = scanner.scan([target / f for f in files])
    except SecretScanError as e:
        if mode is SecretsMode.REDACT:
            raise
        logger.warning("Skipping secret detection: %s", e)
        return None
    if not findings:
        return None

    if mode is SecretsMode.REDACT:
        logger.warning("Redacting %d detected secrets", len(findings))
        return RedactionContext(enabled=True, findings=tuple(findings), base_dir=target)

    for finding in findings:
        logger.error(
            "Secret detected: %s, secret=%s, file=%s, line=%d",
            finding.description,
            finding.secret,
            finding.file,
            finding.line,
        )
    raise SecretsDetectedError(count=len(findings))


def build_token_counter(settings: Settings) -> Counter | None:
    """Load the tokenizer once, or return None when counting is skipped or unavailable."""
    if settings.skip_token_count:
        return None
    try:
        return TokenCounter()
    except Exception as e:  # noqa: BLE001
        logger.warning("Token counting disabled, tokenizer unavailable: %s", e)
        return None


def run(
    settings: Settings,
    *,
    scanner: SecretScanner | None = None,
    commit_counter: CommitCounter = git_commit_counts,
    token_counter: Counter | None = None,
    stdout: TextIO | None = None,
) -> None:
    """Export `settings.target_dir` according to `settings`.

    Args:
        settings (Settings): the run configuration.
        scanner (SecretScanner | None): finding oracle, `GitleaksScanner` when None.
        commit_counter (CommitCounter): commit-frequency oracle.
        token_counter (Counter | None): tokenizer, loaded from tiktoken when None.
        stdout (TextIO | None): sink used when no output file is set.

    Raises:
        Dir2LLMError: on any fatal condition.
    """
    if settings.target_dir is None:
        raise TargetDirectoryError(path=None)
    target = settings.target_dir.resolve()
    if not target.is_dir():
        raise TargetDirectoryError(path=target, message="Target is not a directory.")

    output = settings.output.resolve() if settings.output is not None else None
    if output is not None and output.exists() and not settings.force:
        raise OutputExistsError(path=output)

    fmt = resolve_format(settings)
    project = load_project_config(target)

    files = walk_directory(
        target,
        allowed_extensions=project.extensions(),
        ignored_patterns=compile_patterns(project.patterns()),
        output_file=output,
    )
    logger.info("Found %d files in %s", len(files), target)

    if not settings.no_sort:
        files = sort_by_commit_frequency(target, files, commit_counter)

    redaction = scan_for_secrets(settings, target, files, scanner or GitleaksScanner())

    if token_counter is None:
        token_counter = build_token_counter(settings)
    serializer = new_serializer(fmt, token_counter=None if settings.skip_token_count else token_counter)
    config = SerializationConfig(
        show_tree=not settings.no_tree,
        large_file_size_threshold=settings.large_file_threshold,
        high_token_threshold=settings.high_token_threshold,
        skip_token_count=settings.skip_token_count,
        redaction=redaction,
    )

    if output is None:
        write_document(serializer, stdout or sys.stdout, target, files, config, token_counter)
        return
    with output.open("w", encoding="utf-8") as sink:
        write_document(serializer, sink, target, files, config, token_counter)
    logger.info("File written to %s", output)


def write_document(
    serializer: Serializer,
    sink: TextIO,
    target: Path,
    files: Sequence[str],
    config: SerializationConfig,
    token_counter: Counter | None,
) -> None:
    """Serialize into `sink`, logging the document token total when counting."""
    if config.skip_token_count or token_counter is None:
        serializer.serialize(sink, target, files, config)
        return
    counting = TokenCountingWriter(sink, token_counter)
    serializer.serialize(counting, target, files, config)
    if counting.failed:
        return
    logger.info("Output contains approximately %d tokens", counting.token_count)


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = parse_args(argv)
        if settings.log_file:
            setup_logging(settings.log_file)
        run(settings)
    except Dir2LLMError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
