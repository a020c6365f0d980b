from __future__ import annotations

import re
from enum import StrEnum
from pathlib import Path

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from dir2llm.exceptions import ConfigError, UnknownFormatError


class OutputFormat(StrEnum):
    """Output document formats understood by the serializer factory."""

    MARKDOWN = "md"
    XML = "xml"
    TEXT = "txt"


class SecretsMode(StrEnum):
    """What to do when the secret scanner reports findings."""

    FAIL = "fail"
    IGNORE = "ignore"
    REDACT = "redact"


FORMAT_SYNONYMS: dict[str, OutputFormat] = {
    "md": OutputFormat.MARKDOWN,
    "markdown": OutputFormat.MARKDOWN,
    "xml": OutputFormat.XML,
    "txt": OutputFormat.TEXT,
    "text": OutputFormat.TEXT,
    "plain": OutputFormat.TEXT,
    "plaintext": OutputFormat.TEXT,
}

DEFAULT_ALLOWED_EXTENSIONS: frozenset[str] = frozenset(
    f".{ext}"
    for ext in (
        # Programming languages
        "rs", "c", "h", "cpp", "hpp", "py", "java", "go", "rb", "php", "cs",
        "fs", "fsx", "fsi", "fsscript", "scala", "kt", "kts", "dart", "swift",
        "m", "mm", "r", "pl", "pm", "t", "lua", "elm", "erl", "ex", "exs", "zig",
        "psgi", "cgi", "groovy",
        # Web and frontend
        "html", "css", "sass", "scss", "js", "ts", "jsx", "tsx", "vue", "svelte",
        "haml", "hbs", "jade", "less", "coffee", "astro",
        # Configuration and data
        "toml", "json", "yaml", "yml", "ini", "conf", "cfg", "properties", "env",
        "xml", "sql", "htaccess",
        # Documentation and markup
        "md", "mdx", "markdown", "txt", "graphql", "proto", "prisma", "dhall",
        # Build and project files
        "gitignore", "lock", "gradle", "pom", "sbt", "gemspec", "podspec", "rake",
        # Infrastructure
        "sh", "fish", "tf", "tfvars",
    )
)  # fmt: skip

# Matched against slash-separated relative paths; directories carry a trailing "/".
DEFAULT_IGNORED_PATH_PATTERNS: tuple[str, ...] = (
    # Directories
    r"(^|/)\.git/", r"(^|/)\.next/", r"(^|/)node_modules/", r"(^|/)vendor/",
    r"(^|/)dist/", r"(^|/)build/", r"(^|/)out/", r"(^|/)target/", r"(^|/)bin/",
    r"(^|/)obj/", r"(^|/)coverage/", r"(^|/)test-results/", r"(^|/)\.idea/",
    r"(^|/)\.vscode/", r"(^|/)\.vs/", r"(^|/)\.settings/", r"(^|/)\.gradle/",
    r"(^|/)\.mvn/", r"(^|/)\.pytest_cache/", r"(^|/)__pycache__/",
    r"(^|/)\.sass-cache/", r"(^|/)\.vercel/", r"(^|/)\.turbo/",
    r"(^|/)\.venv/", r"(^|/)\.mypy_cache/", r"(^|/)\.ruff_cache/",
    # Lock files and dependency metadata
    r"(^|/)pnpm-lock\.yaml$", r"(^|/)package-lock\.json$", r"(^|/)yarn\.lock$",
    r"(^|/)Cargo\.lock$", r"(^|/)Gemfile\.lock$", r"(^|/)composer\.lock$",
    r"(^|/)mix\.lock$", r"(^|/)poetry\.lock$", r"(^|/)Pipfile\.lock$",
    r"(^|/)packages\.lock\.json$", r"(^|/)paket\.lock$", r"(^|/)uv\.lock$",
    # Temporary and binary files
    r"\.pyc$", r"\.pyo$", r"\.pyd$", r"\.class$", r"\.o$", r"\.obj$",
    r"\.dll$", r"\.exe$", r"\.so$", r"\.dylib$", r"\.log$", r"\.tmp$",
    r"\.temp$", r"\.swp$", r"\.swo$", r"\.bak$", r"~$",
    # System files
    r"(^|/)\.DS_Store$", r"(^|/)Thumbs\.db$", r"(^|/)\.env(\..+)?$",
    # Specific files
    r"(^|/)LICENSE$", r"(^|/)\.gitignore$",
)  # fmt: skip

IGNORE_FILENAMES: tuple[str, ...] = (".gitignore", ".dir2llmignore")

CONFIG_FILENAMES: tuple[str, ...] = (".dir2llm.yaml", ".dir2llm.yml")

EXT2LANG: dict[str, str] = {
    ".bash": "bash",
    ".c": "c",
    ".cfg": "ini",
    ".conf": "ini",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".css": "css",
    ".go": "go",
    ".h": "c",
    ".hpp": "cpp",
    ".html": "html",
    ".ini": "ini",
    ".java": "java",
    ".js": "javascript",
    ".json": "json",
    ".jsx": "jsx",
    ".kt": "kotlin",
    ".md": "markdown",
    ".php": "php",
    ".py": "python",
    ".rb": "ruby",
    ".rs": "rust",
    ".scss": "scss",
    ".sh": "bash",
    ".sql": "sql",
    ".swift": "swift",
    ".tf": "hcl",
    ".toml": "toml",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
}

DEFAULT_LARGE_FILE_SIZE_THRESHOLD = 1_048_576
DEFAULT_HIGH_TOKEN_THRESHOLD = 5_000


def normalize_format(value: str | OutputFormat) -> OutputFormat:
    """Map a user supplied format name to an `OutputFormat`.

    Args:
        value (str | OutputFormat): format name, case-insensitive, synonyms accepted.

    Raises:
        UnknownFormatError: if the name is not a known format or synonym.

    Returns:
        OutputFormat: the canonical format.
    """
    key = str(value).strip().lower()
    if key not in FORMAT_SYNONYMS:
        raise UnknownFormatError(format=str(value))
    return FORMAT_SYNONYMS[key]


def guess_language(path: str) -> str:
    """Get the suggested code fence language for a path, or "" if unknown."""
    suffix = Path(path).suffix.lower()
    return EXT2LANG.get(suffix, "")


def compile_patterns(patterns: tuple[str, ...] | list[str]) -> tuple[re.Pattern[str], ...]:
    """Compile ignore regexes once, for sharing across the whole walk.

    Args:
        patterns: regular expressions matched against relative paths.

    Raises:
        ConfigError: if a pattern is not a valid regular expression.

    Returns:
        tuple[re.Pattern[str], ...]: the compiled patterns, in input order.
    """
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise ConfigError(path=Path(pattern), reason=f"invalid pattern: {e}") from e
    return tuple(compiled)


class Finding(BaseModel):
    """A located secret reported by the secret scanner.

    Attributes:
        description: Human readable rule description.
        secret: The literal matched text.
        file: Absolute path of the file holding the secret.
        line: 1-based line number, 0 when the location is unknown.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    description: str = Field(
        default="",
        validation_alias=AliasChoices("description", "Description"),
    )
    secret: str = Field(default="", validation_alias=AliasChoices("secret", "Secret"))
    file: str = Field(default="", validation_alias=AliasChoices("file", "File"))
    line: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("line", "StartLine"),
    )


class RedactionContext(BaseModel):
    """Scopes findings to relative paths under `base_dir`."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    enabled: bool = Field(default=False, description="Whether redaction is active")
    findings: tuple[Finding, ...] = Field(default=(), description="All scanner findings")
    base_dir: Path = Field(default_factory=Path.cwd, description="Directory paths are relative to")


class MinifiedFileThresholds(BaseModel):
    """Tuning values for the minified JS/CSS heuristic."""

    model_config = ConfigDict(frozen=True)

    max_line_length: int = 500
    max_lines_per_char_ratio: float = 0.02
    min_non_blank_lines: int = 5
    min_total_chars: int = 200
    single_line_min_length: int = 1000

    js_single_char_var_strong: int = 15
    js_single_char_var_moderate: int = 8
    js_short_params: int = 3
    js_chained_methods: int = 2
    js_pattern_score: int = 3

    css_clear_semicolon_count: int = 30
    css_clear_space_divisor: int = 30
    css_pattern_semicolon_count: int = 20
    css_pattern_space_divisor: int = 20
    css_no_spaces_around_brackets: int = 10
    css_no_spaces_after_colons: int = 10
    css_pattern_score: int = 3


class SerializationConfig(BaseModel):
    """Per-call serializer options; thresholds <= 0 disable their warning."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    show_tree: bool = Field(default=True, description="Render the directory tree section")
    large_file_size_threshold: int = Field(
        default=DEFAULT_LARGE_FILE_SIZE_THRESHOLD,
        description="Warn for files larger than this many bytes",
    )
    high_token_threshold: int = Field(
        default=DEFAULT_HIGH_TOKEN_THRESHOLD,
        description="Warn for files with more tokens than this",
    )
    skip_token_count: bool = Field(default=False, description="Do not count tokens")
    redaction: RedactionContext | None = Field(default=None, description="Redaction scope")
    minified_thresholds: MinifiedFileThresholds = Field(default_factory=MinifiedFileThresholds)


class ProjectConfig(BaseModel):
    """Optional per-project overrides read from `.dir2llm.yaml`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed_extensions: list[str] = Field(default_factory=list, description="Extra extensions")
    ignored_path_patterns: list[str] = Field(default_factory=list, description="Extra regexes")

    def extensions(self) -> frozenset[str]:
        """Return the default allowed extensions merged with the extra ones."""
        extra = {ext if ext.startswith(".") else f".{ext}" for ext in self.allowed_extensions}
        return DEFAULT_ALLOWED_EXTENSIONS | extra

    def patterns(self) -> tuple[str, ...]:
        """Return the default ignore regexes followed by the extra ones."""
        return DEFAULT_IGNORED_PATH_PATTERNS + tuple(self.ignored_path_patterns)


def load_project_config(target_dir: Path) -> ProjectConfig:
    """Load `.dir2llm.yaml` (or `.yml`) from `target_dir` when present.

    Args:
        target_dir (Path): the directory being exported.

    Raises:
        ConfigError: if the file is not valid YAML or has unexpected keys.

    Returns:
        ProjectConfig: the parsed configuration, or defaults when no file exists.
    """
    for name in CONFIG_FILENAMES:
        path = target_dir / name
        if not path.is_file():
            continue
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            return ProjectConfig.model_validate(data)
        except (OSError, yaml.YAMLError, ValidationError) as e:
            raise ConfigError(path=path, reason=str(e)) from e
    return ProjectConfig()
