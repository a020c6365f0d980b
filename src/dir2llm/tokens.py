from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Protocol

import tiktoken

from dir2llm.logging import logger

if TYPE_CHECKING:
    from typing import TextIO

DEFAULT_ENCODING = "o200k_base"


class Counter(Protocol):
    """Anything able to count the tokens of a string."""

    def count(self, text: str) -> int: ...


class TokenCounter:
    """Token counter over a single `tiktoken` encoding.

    Loading an encoding is expensive, so build one instance at startup and
    hand it to whoever needs to count.
    """

    def __init__(self, encoding_name: str = DEFAULT_ENCODING) -> None:
        self.encoding_name = encoding_name
        self._encoding = tiktoken.get_encoding(encoding_name)

    def count(self, text: str) -> int:
        """Count the tokens of `text`; special-token markers count as plain text."""
        if not text:
            return 0
        return len(self._encoding.encode(text, disallowed_special=()))


class TokenCountingWriter:
    """Text sink wrapper that counts the tokens of everything written through it.

    Chunks are counted independently, so the total can differ slightly from
    counting the whole document at once. If the counter fails, counting stops
    with a warning and the text is still forwarded to the sink.
    """

    def __init__(self, sink: TextIO, counter: Counter) -> None:
        self.sink = sink
        self.counter = counter
        self.failed = False
        self._total = 0
        self._lock = threading.Lock()

    def write(self, text: str) -> int:
        if not self.failed:
            try:
                tokens = self.counter.count(text)
            except Exception as e:  # noqa: BLE001
                logger.warning("Failed to count output tokens, total disabled: %s", e)
                self.failed = True
            else:
                with self._lock:
                    self._total += tokens
        return self.sink.write(text)

    def flush(self) -> None:
        self.sink.flush()

    @property
    def token_count(self) -> int:
        with self._lock:
            return self._total
