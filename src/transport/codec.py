"""Wire format for recommendation batches.

A batch is a single JSON array of product objects, written once per
connection. The reader decodes exactly one JSON array from the stream and
ignores anything after it.
"""

import codecs
import json
import re
import socket
from typing import Any, Iterable, List

from pydantic import TypeAdapter, ValidationError

from src.exceptions import BatchDecodeError
from src.recommender.catalog import Product

RECV_CHUNK_SIZE = 4096
DEFAULT_MAX_BATCH_BYTES = 16 * 1024 * 1024

_batch_adapter = TypeAdapter(List[Product])
_json_decoder = json.JSONDecoder()

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_NUMBER_TAIL = re.compile(r"[-+0-9.eE]+")
_LITERALS = ("true", "false", "null", "NaN", "Infinity", "-Infinity")
_DIGITS = "0123456789"
_CLOSING_MARKS = (b"\"", b"]", b"}", b",")

# Array decoding states
_EXPECT_OPEN = "open"
_EXPECT_FIRST = "first"
_EXPECT_VALUE = "value"
_EXPECT_SEPARATOR = "separator"


def encode_batch(items: Iterable[Product]) -> bytes:
    """Serialize products as a UTF-8 JSON array."""
    return _batch_adapter.dump_json(list(items))


def decode_batch(value: Any) -> List[Product]:
    """Validate an already decoded JSON value as a list of products.

    Raises:
        BatchDecodeError: If the value is not an array of product objects.
    """
    try:
        return _batch_adapter.validate_python(value)
    except ValidationError as e:
        raise BatchDecodeError(
            f"expected an array of products ({e.error_count()} validation errors)"
        ) from e


def _is_partial_scalar(error: json.JSONDecodeError) -> bool:
    # A scalar cut off by the end of the buffer, such as "4." or "tr"
    tail = error.doc[error.pos :]
    if any(literal.startswith(tail) for literal in _LITERALS):
        return True
    if not _NUMBER_TAIL.fullmatch(tail):
        return False
    if error.msg.startswith("Expecting value"):
        return True
    # "Expecting ',' delimiter" directly after digits: the number was cut
    return error.pos > 0 and error.doc[error.pos - 1] in _DIGITS


def _is_truncated(error: json.JSONDecodeError) -> bool:
    # Errors at the end of the buffer, an open string or a cut scalar may
    # still be fixed by more data. Anything else is malformed.
    return (
        error.pos >= len(error.doc)
        or error.msg.startswith("Unterminated string")
        or _is_partial_scalar(error)
    )


class BatchStreamDecoder:
    """Incrementally decode one JSON array from a byte stream.

    Elements are decoded as soon as they are complete and the consumed text
    is dropped, so each byte is decoded a bounded number of times however
    the stream is split into chunks.
    """

    def __init__(self, max_bytes: int = DEFAULT_MAX_BATCH_BYTES):
        self.max_bytes = max_bytes
        self.bytes_read = 0
        self.values: List[Any] = []
        self.complete = False
        self._utf8 = codecs.getincrementaldecoder("utf-8")()
        self._pieces: List[str] = []
        self._pending = False
        self._state = _EXPECT_OPEN

    def feed(self, chunk: bytes) -> bool:
        """Consume a chunk; return True once the closing bracket was read.

        Raises:
            BatchDecodeError: If the data can never become a JSON array, or
                the batch grows beyond ``max_bytes``.
        """
        if self.complete:
            return True

        self.bytes_read += len(chunk)
        if self.bytes_read > self.max_bytes:
            raise BatchDecodeError(
                f"batch exceeds {self.max_bytes} bytes", self.bytes_read
            )

        try:
            self._pieces.append(self._utf8.decode(chunk))
        except UnicodeDecodeError as e:
            raise BatchDecodeError(f"invalid UTF-8: {e.reason}", self.bytes_read) from e

        # A cut element can only complete once a closing character arrives
        if self._pending and not any(mark in chunk for mark in _CLOSING_MARKS):
            return False

        text = "".join(self._pieces)
        pos = self._advance(text)
        self._pieces = [text[pos:]]
        return self.complete

    def _advance(self, text: str) -> int:
        self._pending = False
        pos = 0
        while not self.complete:
            pos = _WHITESPACE.match(text, pos).end()
            if pos >= len(text):
                return pos

            char = text[pos]
            if self._state == _EXPECT_OPEN:
                if char != "[":
                    raise BatchDecodeError("expected a JSON array", self.bytes_read)
                pos += 1
                self._state = _EXPECT_FIRST
            elif self._state == _EXPECT_SEPARATOR:
                if char == ",":
                    self._state = _EXPECT_VALUE
                elif char == "]":
                    self.complete = True
                else:
                    raise BatchDecodeError(
                        f"expected ',' or ']' at offset {pos}", self.bytes_read
                    )
                pos += 1
            elif self._state == _EXPECT_FIRST and char == "]":
                self.complete = True
                pos += 1
            else:
                try:
                    value, end = _json_decoder.raw_decode(text, pos)
                except json.JSONDecodeError as e:
                    if _is_truncated(e):
                        self._pending = True
                        return pos
                    raise BatchDecodeError(str(e), self.bytes_read) from e
                if text[end - 1] in _DIGITS and (
                    end >= len(text) or _NUMBER_TAIL.fullmatch(text, end)
                ):
                    # A number at the end of the buffer may continue
                    self._pending = True
                    return pos
                self.values.append(value)
                pos = end
                self._state = _EXPECT_SEPARATOR
        return pos

    def result(self) -> List[Product]:
        """Validate the decoded elements as products."""
        return decode_batch(self.values)


def read_batch(
    conn: socket.socket, max_bytes: int = DEFAULT_MAX_BATCH_BYTES
) -> List[Product]:
    """Read and decode one batch from a connected stream socket.

    Reads until one complete JSON array has arrived, then validates it as a
    list of products. Nothing is returned unless the whole batch decoded.
    Bytes after the closing bracket are ignored.

    Args:
        conn: Connected socket to read from.
        max_bytes: Upper bound on the encoded batch size.

    Returns:
        The decoded products.

    Raises:
        BatchDecodeError: If the peer closes early, sends malformed data or
            exceeds ``max_bytes``.
        OSError: If reading from the socket fails.
    """
    decoder = BatchStreamDecoder(max_bytes)

    while True:
        chunk = conn.recv(RECV_CHUNK_SIZE)
        if not chunk:
            if not decoder.bytes_read:
                raise BatchDecodeError("connection closed before any data")
            raise BatchDecodeError("connection closed mid-value", decoder.bytes_read)

        if decoder.feed(chunk):
            return decoder.result()
