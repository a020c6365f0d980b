from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, computed_field

from dir2llm.config import DEFAULT_HIGH_TOKEN_THRESHOLD, DEFAULT_LARGE_FILE_SIZE_THRESHOLD, SecretsMode
from dir2llm.exceptions import ConfigError

ENV_FILE = find_dotenv(usecwd=True)
ENV_PREFIX = "DIR2LLM_"


def env_default(name: str, fallback: str) -> str:
    """Read a `DIR2LLM_*` default from the environment, then `.env`, then `fallback`."""
    key = ENV_PREFIX + name
    if key in os.environ:
        return os.environ[key]
    values = dotenv_values(ENV_FILE) if ENV_FILE else {}
    return values.get(key) or fallback


def env_int(name: str, fallback: int) -> int:
    """Read an integer `DIR2LLM_*` default.

    Raises:
        ConfigError: if the configured value is not an integer.
    """
    key = ENV_PREFIX + name
    raw = env_default(name, str(fallback))
    try:
        return int(raw)
    except ValueError as e:
        source = Path(key) if key in os.environ or not ENV_FILE else Path(ENV_FILE)
        raise ConfigError(path=source, reason=f"{key} must be an integer, got {raw!r}") from e


class Settings(BaseModel):
    """Configuration settings for one dir2llm run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    target_dir: Path | None = Field(default=None, description="Directory to export.")
    output: Path | None = Field(default=None, description="Output file, stdout when None.")
    force: bool = Field(default=False, description="Overwrite an existing output file.")
    log_file: str = Field(default="", description="Log file path.")

    no_tree: bool = Field(default=False, description="Do not render the directory tree.")
    no_sort: bool = Field(default=False, description="Do not sort files by commit frequency.")
    ignore_secrets: bool = Field(default=False, description="Do not scan for secrets.")
    redact_secrets: bool = Field(default=False, description="Redact detected secrets.")
    skip_token_count: bool = Field(default=False, description="Do not count tokens.")

    format: str = Field(
        default_factory=lambda: env_default("FORMAT", ""),
        description="Output format (md, xml, txt); inferred from the output suffix when empty.",
    )
    high_token_threshold: int = Field(
        default_factory=lambda: env_int("HIGH_TOKEN_THRESHOLD", DEFAULT_HIGH_TOKEN_THRESHOLD),
        description="Warn for files with more tokens than this; 0 disables.",
    )
    large_file_threshold: int = Field(
        default_factory=lambda: env_int("LARGE_FILE_THRESHOLD", DEFAULT_LARGE_FILE_SIZE_THRESHOLD),
        description="Warn for files larger than this many bytes; 0 disables.",
    )

    @computed_field
    @property
    def secrets_mode(self) -> SecretsMode:
        """Redaction wins over ignoring; failing is the default."""
        if self.redact_secrets:
            return SecretsMode.REDACT
        if self.ignore_secrets:
            return SecretsMode.IGNORE
        return SecretsMode.FAIL
