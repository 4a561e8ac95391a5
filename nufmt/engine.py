"""
Single-pass re-indentation of nu source.

The engine works on bytes, not characters: only a handful of ASCII bytes
have a meaning outside of strings and comments, everything else is copied
through. All layout outside strings and comments is regenerated; raw
whitespace found there is dropped.

The per-byte transition `step()` is a pure function, so that the state
machine can be tested one byte at a time; `format_stream()` drives it over
a pair of binary streams.
"""
import io
import logging
from enum import Enum
from typing import BinaryIO, NamedTuple, Tuple

from .indent import DEFAULT, Indentation, line_break

log = logging.getLogger("nufmt:engine")

CHUNK_SIZE = io.DEFAULT_BUFFER_SIZE

OPENING = frozenset(b"[{")
CLOSING = frozenset(b"]}")
WHITESPACE = frozenset(b" \t\n\r\x0b\x0c")

QUOTE = ord('"')
BACKSLASH = ord("\\")
HASH = ord("#")
NEWLINE = ord("\n")
COLON = ord(":")
COMMA = ord(",")


class Mode(Enum):
    NORMAL = "normal"
    IN_STRING = "string"
    IN_COMMENT = "comment"


class State(NamedTuple):
    mode: Mode = Mode.NORMAL
    escape_pending: bool = False
    indent_level: int = 0
    # The next byte must start a new, indented line.
    pending_newline: bool = False
    # ...and that request came from an opener, with only whitespace since.
    pending_opener: bool = False


INITIAL = State()


def step(state: State, byte: int, indentation: Indentation = DEFAULT) -> Tuple[State, bytes]:
    """Process one input byte; return the next state and the bytes to write."""
    if state.mode is Mode.IN_COMMENT:
        if byte == NEWLINE:
            state = state._replace(mode=Mode.NORMAL)
        return state, bytes((byte,))

    if state.mode is Mode.IN_STRING:
        if state.escape_pending:
            state = state._replace(escape_pending=False)
        elif byte == BACKSLASH:
            state = state._replace(escape_pending=True)
        elif byte == QUOTE:
            state = state._replace(mode=Mode.NORMAL)
        return state, bytes((byte,))

    if byte in WHITESPACE:
        return state, b""

    mode = state.mode
    level = state.indent_level
    out = bytearray()

    if byte == HASH:
        mode = Mode.IN_COMMENT
    elif byte == QUOTE:
        mode = Mode.IN_STRING
    elif byte in CLOSING:
        level = max(level - 1, 0)
        if not state.pending_newline:
            # Non-empty container: the closer goes on its own line.
            line_break(out, level, indentation)

    if state.pending_newline and not (byte in CLOSING and state.pending_opener):
        line_break(out, level, indentation)

    out.append(byte)
    if byte == COLON:
        out += b" "

    if byte in OPENING:
        level += 1
    requested = byte in OPENING or byte == COMMA
    next_state = State(
        mode=mode,
        escape_pending=False,
        indent_level=level,
        pending_newline=requested,
        pending_opener=byte in OPENING,
    )
    return next_state, bytes(out)


def format_stream(input: BinaryIO, output: BinaryIO, indentation: Indentation = DEFAULT) -> None:
    """Re-indent everything readable from `input` into `output`.

    Both streams are binary. Read and write errors propagate as `OSError`,
    leaving in `output` whatever had been written so far.
    """
    state = INITIAL
    while True:
        chunk = input.read(CHUNK_SIZE)
        if not chunk:
            break
        out = bytearray()
        for byte in chunk:
            state, emitted = step(state, byte, indentation)
            out += emitted
        output.write(out)
    output.flush()
    if state.indent_level:
        log.debug("end of stream with %d unclosed container(s)", state.indent_level)
    if state.mode is Mode.IN_STRING:
        log.debug("end of stream inside a string")
