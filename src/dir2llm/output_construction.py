from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar
from xml.sax.saxutils import escape, quoteattr

from dir2llm.config import OutputFormat, SerializationConfig, guess_language, normalize_format
from dir2llm.detection import is_minified
from dir2llm.exceptions import SerializationError
from dir2llm.file_manipulation import normalize_content, now_iso, read_text
from dir2llm.logging import logger
from dir2llm.redaction import findings_for_file, redact_secrets
from dir2llm.tree import TreeNode, generate_tree, render_tree_lines, render_tree_markdown

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path
    from typing import TextIO

    from dir2llm.tokens import Counter

SERIALIZERS: dict[OutputFormat, type[Serializer]] = {}

_BACKTICK_RUN = re.compile(r"`+")
# Characters XML 1.0 forbids even as character references.
_XML_ILLEGAL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def xml_text(text: str) -> str:
    """Escape text for XML, replacing characters XML 1.0 cannot carry with U+FFFD."""
    return escape(_XML_ILLEGAL.sub("\ufffd", text))


def xml_attr(text: str) -> str:
    """Quote an attribute value for XML, with the same replacement as `xml_text`."""
    return quoteattr(_XML_ILLEGAL.sub("\ufffd", text))


def register_serializer(fmt: OutputFormat) -> Callable[[type[Serializer]], type[Serializer]]:
    """Class decorator registering a serializer for an output format.

    Args:
        fmt (OutputFormat): the format handled by the decorated class.

    Returns:
        Callable[[type[Serializer]], type[Serializer]]: the decorator, which
            returns the class unchanged.
    """

    def decorator(cls: type[Serializer]) -> type[Serializer]:
        cls.format = fmt
        SERIALIZERS[fmt] = cls
        return cls

    return decorator


def preamble_lines(config: SerializationConfig) -> list[str]:
    """Return the caveats printed at the top of every document."""
    lines = [
        "This document bundles the contents of a directory so that a large language model can read it.",
        "It is a read-only snapshot: edits made here are not applied to the original files.",
        "It may contain sensitive information; share it with the same care as the source code.",
        "Some files may have been excluded by ignore rules, extension filters or read errors.",
    ]
    if config.redaction is not None and config.redaction.enabled:
        lines.append("Detected secrets have been replaced with [REDACTED SECRET: <description>] placeholders.")
    return lines


class Serializer(ABC):
    """Writes a list of files, relative to a base directory, as one document.

    Subclasses only decide the framing; reading, redaction, normalization and
    the advisory warnings are shared.
    """

    format: ClassVar[OutputFormat]
    separator: ClassVar[str] = "\n\n"

    def __init__(self, token_counter: Counter | None = None) -> None:
        self.token_counter = token_counter

    def serialize(
        self,
        sink: TextIO,
        base_dir: Path,
        paths: Sequence[str],
        config: SerializationConfig | None = None,
    ) -> None:
        """Write the document for `paths` to `sink`, in the given order.

        Files that cannot be read are logged and left out; every other file
        appears exactly once.

        Args:
            sink (TextIO): destination of the document.
            base_dir (Path): directory the paths are relative to.
            paths (Sequence[str]): slash separated relative paths, in final order.
            config (SerializationConfig | None): options, defaults when None.

        Raises:
            SerializationError: if writing to `sink` fails.
        """
        config = config or SerializationConfig()
        self._write(sink, self.header(config), "<header>")
        if config.show_tree and paths:
            self._write(sink, self.tree(generate_tree(paths)), "<tree>")
        self._write(sink, self.files_start(), "<header>")

        first = True
        for rel in paths:
            content = self.prepare_content(base_dir, rel, config)
            if content is None:
                continue
            if not first:
                self._write(sink, self.separator, rel)
            self._write(sink, self.file_block(rel, content), rel)
            first = False

        self._write(sink, self.footer(), "<footer>")

    def prepare_content(self, base_dir: Path, rel: str, config: SerializationConfig) -> str | None:
        """Read, redact and normalize one file, logging advisory warnings.

        Redaction runs on the content as stored on disk so that finding line
        numbers still match.

        Returns:
            str | None: the content to emit, or None if the file could not be read.
        """
        full_path = base_dir / rel
        try:
            raw = read_text(full_path)
            size = full_path.stat().st_size
        except OSError as e:
            logger.warning("Skipping file %s due to read error: %s", rel, e)
            return None

        if config.redaction is not None and config.redaction.enabled:
            findings = findings_for_file(config.redaction, rel)
            if findings:
                raw = redact_secrets(raw, findings)

        content = normalize_content(raw)

        if 0 < config.large_file_size_threshold < size:
            logger.warning(
                "Large file %s (%d bytes, threshold %d bytes), included anyway",
                rel,
                size,
                config.large_file_size_threshold,
            )
        if is_minified(content, rel, config.minified_thresholds):
            logger.warning("File %s looks minified and may waste context", rel)
        if not config.skip_token_count and self.token_counter is not None:
            self._check_tokens(rel, content, config.high_token_threshold)
        return content

    def _check_tokens(self, rel: str, content: str, threshold: int) -> None:
        try:
            tokens = self.token_counter.count(content)  # type: ignore[union-attr]
        except Exception as e:  # noqa: BLE001
            logger.warning("Failed to count tokens for %s: %s", rel, e)
            return
        if 0 < threshold < tokens:
            logger.warning("File %s has a high token count (%d tokens, threshold %d)", rel, tokens, threshold)

    @staticmethod
    def _write(sink: TextIO, text: str, where: str) -> None:
        if not text:
            return
        try:
            sink.write(text)
        except (OSError, ValueError) as e:
            raise SerializationError(path=where, reason=str(e)) from e

    @abstractmethod
    def header(self, config: SerializationConfig) -> str: ...

    @abstractmethod
    def tree(self, root: TreeNode) -> str: ...

    @abstractmethod
    def file_block(self, rel: str, content: str) -> str: ...

    def files_start(self) -> str:
        return ""

    def footer(self) -> str:
        return "\n"


@register_serializer(OutputFormat.MARKDOWN)
class MarkdownSerializer(Serializer):
    """H3 heading per file and a fenced code block around its content."""

    def header(self, config: SerializationConfig) -> str:
        lines = ["# Directory Export", "", f"Generated at {now_iso()}", ""]
        lines.extend(f"- {line}" for line in preamble_lines(config))
        return "\n".join(lines) + "\n\n"

    def tree(self, root: TreeNode) -> str:
        return "## Directory Tree\n\n" + "\n".join(render_tree_markdown(root)) + "\n\n"

    def files_start(self) -> str:
        return "## Files\n\n"

    def file_block(self, rel: str, content: str) -> str:
        longest = max((len(run) for run in _BACKTICK_RUN.findall(content)), default=0)
        fence = "`" * max(3, longest + 1)
        return f"### {rel}\n\n{fence}{guess_language(rel)}\n{content}\n{fence}"


@register_serializer(OutputFormat.XML)
class XMLSerializer(Serializer):
    """One `<file path="...">` element per file inside a `<document>` root."""

    def header(self, config: SerializationConfig) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f"<document generated={quoteattr(now_iso())}>",
            "<meta>",
        ]
        lines.extend(f"<note>{xml_text(line)}</note>" for line in preamble_lines(config))
        lines.append("</meta>")
        return "\n".join(lines) + "\n"

    def tree(self, root: TreeNode) -> str:
        return "<tree>\n" + xml_text("\n".join(render_tree_lines(root))) + "\n</tree>\n"

    def files_start(self) -> str:
        return "<files>\n"

    def file_block(self, rel: str, content: str) -> str:
        return f"<file path={xml_attr(rel)}>\n{xml_text(content)}\n</file>"

    def footer(self) -> str:
        return "\n</files>\n</document>\n"


@register_serializer(OutputFormat.TEXT)
class TextSerializer(Serializer):
    """A ruled `File: <path>` banner before each file's content and an `End of file: <path>` line after it.

    Content is emitted verbatim, so a file that itself contains a banner for
    another path can still imitate a boundary; the closing line names the path
    to make such collisions visible.
    """

    rule: ClassVar[str] = "=" * 64

    def header(self, config: SerializationConfig) -> str:
        lines = ["Directory Export", f"Generated at {now_iso()}", ""]
        lines.extend(preamble_lines(config))
        return "\n".join(lines) + "\n\n"

    def tree(self, root: TreeNode) -> str:
        return "Directory Tree:\n" + "\n".join(render_tree_lines(root)) + "\n\n"

    def file_block(self, rel: str, content: str) -> str:
        return f"{self.rule}\nFile: {rel}\n{self.rule}\n{content}\n{self.rule}\nEnd of file: {rel}"


def new_serializer(fmt: str | OutputFormat, token_counter: Counter | None = None) -> Serializer:
    """Build the serializer registered for `fmt`.

    Args:
        fmt (str | OutputFormat): format name, case-insensitive, synonyms accepted.
        token_counter (Counter | None): shared token counter, None to never count.

    Raises:
        UnknownFormatError: if no serializer handles `fmt`.

    Returns:
        Serializer: a ready to use serializer.
    """
    return SERIALIZERS[normalize_format(fmt)](token_counter=token_counter)
