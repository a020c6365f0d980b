from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Dir2LLMError(Exception):
    """Base exception for errors in the dir2llm package."""

    def __str__(self) -> str:
        message = getattr(self, "message", "") or (self.__doc__ or "").strip()
        details = ", ".join(
            f"{name}={value}"
            for name, value in vars(self).items()
            if name != "message" and not name.startswith("_")
        )
        return f"{message} ({details})" if details else message


@dataclass(frozen=True)
class ConfigError(Dir2LLMError):
    """Raised when the project configuration file is invalid."""

    path: Path
    reason: str
    message: str = "Invalid configuration file."


@dataclass(frozen=True)
class TargetDirectoryError(Dir2LLMError):
    """Raised when the target directory is missing or is not a directory."""

    path: Path | None
    message: str = "You must specify an existing target directory."


@dataclass(frozen=True)
class OutputExistsError(Dir2LLMError):
    """Raised when the output file exists and overwriting was not requested."""

    path: Path
    message: str = "Output file already exists, use --force to overwrite."


@dataclass(frozen=True)
class TraversalError(Dir2LLMError):
    """Raised when a directory cannot be read during the walk."""

    path: Path
    reason: str
    message: str = "Directory traversal failed."


@dataclass(frozen=True)
class GitCommandError(Dir2LLMError):
    """Raised when a git command fails."""

    command: str
    returncode: int
    stdout: str
    stderr: str


@dataclass(frozen=True)
class NotAGitRepositoryError(Dir2LLMError):
    """Raised when no Git repository encloses the specified directory."""

    folder: Path
    message: str = "No repository found."


@dataclass(frozen=True)
class RankError(Dir2LLMError):
    """Raised when files cannot be ranked by commit frequency."""

    repo: Path
    reason: str
    message: str = "Failed to sort files by commit frequency."


@dataclass(frozen=True)
class SecretScanError(Dir2LLMError):
    """Raised when the secret scanner fails to run or to report."""

    reason: str
    message: str = "Secret scan failed."


@dataclass(frozen=True)
class SecretsDetectedError(Dir2LLMError):
    """Raised when secrets are found and neither ignoring nor redacting them was requested."""

    count: int
    message: str = "Secrets detected, use --redact-secrets or --ignore-secrets to continue."


@dataclass(frozen=True)
class UnknownFormatError(Dir2LLMError):
    """Raised when no serializer exists for the requested output format."""

    format: str
    message: str = "Unknown output format."


@dataclass(frozen=True)
class SerializationError(Dir2LLMError):
    """Raised when the output document cannot be written."""

    path: str
    reason: str
    message: str = "Failed to write output."
