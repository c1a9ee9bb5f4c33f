"""Streaming parser for goroutine dumps.

The input usually arrives through a pipe with unrelated output before and
after the dump (log lines, the panic message, ...).  Anything that does not fit
the dump grammar is written to a pass-through sink unchanged so callers can
keep showing it.

A goroutine section looks like::

    goroutine 7 [chan receive, 5 minutes, locked to thread]:
    main.worker(0xc42001e0c0, 0x3)
    \t/home/user/src/app/main.go:42 +0x5d
    created by main.main
    \t/home/user/src/app/main.go:20 +0x91

and ends at the next blank line.
"""

from __future__ import annotations

import enum
import logging
import re
from typing import Iterable, List, Optional, TextIO

from .aliasing import name_arguments
from .exceptions import MalformedArgumentError
from .model import UNAVAILABLE_SOURCE, Arg, Args, Call, Function, Goroutine, Signature

LOGGER = logging.getLogger(__name__)

__all__ = ["LOCKED_TO_THREAD", "DumpParser", "ParserState", "parse_dump"]

LOCKED_TO_THREAD = "locked to thread"
_MAX_UINT64 = (1 << 64) - 1

_HEADER_RE = re.compile(r"^goroutine ([0-9]+) \[([^\]]+)\]:$")
_MINUTES_RE = re.compile(r"^([0-9]+) minutes$")
_UNAVAILABLE_RE = re.compile(r"^(?:\t| +)goroutine running on other thread; stack unavailable")
# The source may be "<autogenerated>", the tab is sometimes replaced with
# spaces, generated code has no +0x offset and C calls append fp= sp=.
_FILE_RE = re.compile(
    r"^(?:\t| +)(<autogenerated>|.+\.(?:c|go|s)):([0-9]+)"
    r"(?:| \+0x[0-9a-f]+)(?:| fp=0x[0-9a-f]+ sp=0x[0-9a-f]+)$"
)
_CREATED_RE = re.compile(r"^created by (.+)$")
_FUNC_RE = re.compile(r"^(.+)\((.*)\)$")
_ELIDED_RE = re.compile(r"^\.\.\.additional frames elided\.\.\.$")
# Go integer literal syntax with base prefix detection; a bare leading 0 is octal.
_UINT_RE = re.compile(r"^(?:0[xX]([0-9a-fA-F]+)|0[bB]([01]+)|0[oO]([0-7]+)|0([0-7]*)|([1-9][0-9]*))$")


class ParserState(enum.Enum):
    SEEKING_HEADER = "seeking-header"
    UNIT_FIRST_LINE = "unit-first-line"
    UNIT_BODY = "unit-body"


def _parse_uint(token: str) -> Optional[int]:
    match = _UINT_RE.match(token)
    if match is None:
        return None
    hex_digits, bin_digits, oct_digits, legacy_oct, decimal = match.groups()
    if hex_digits is not None:
        value = int(hex_digits, 16)
    elif bin_digits is not None:
        value = int(bin_digits, 2)
    elif oct_digits is not None:
        value = int(oct_digits, 8)
    elif decimal is not None:
        value = int(decimal, 10)
    else:
        value = int(legacy_oct or "0", 8)
    if value > _MAX_UINT64:
        return None
    return value


def _parse_args(line: str, text: str) -> Args:
    args = Args()
    for token in text.split(", "):
        if token == "...":
            args.elided = True
            continue
        if token == "":
            # Remaining values were dropped by the runtime.
            break
        value = _parse_uint(token)
        if value is None:
            raise MalformedArgumentError(line, token)
        args.values.append(Arg(value=value))
    return args


def _parse_header(match: "re.Match[str]", first: bool) -> Goroutine:
    items = match.group(2).split(", ")
    sleep = 0
    locked = False
    for item in items[1:]:
        if item == LOCKED_TO_THREAD:
            locked = True
            continue
        minutes = _MINUTES_RE.match(item)
        if minutes:
            sleep = int(minutes.group(1))
    signature = Signature(state=items[0], sleep=sleep, locked=locked)
    return Goroutine(signature=signature, id=int(match.group(1)), first=first)


class DumpParser:
    """Line driven state machine building :class:`Goroutine` records.

    Feed lines with :meth:`feed` and collect the result with :meth:`finish`.
    """

    def __init__(self, out: TextIO) -> None:
        self.out = out
        self.state = ParserState.SEEKING_HEADER
        self.goroutines: List[Goroutine] = []
        self.forwarded = 0
        self._current: Optional[Goroutine] = None
        self._pending_creator = False

    def _forward(self, line: str) -> None:
        self.out.write(line + "\n")
        self.forwarded += 1

    def _close(self) -> None:
        if self._current is not None:
            self.goroutines.append(self._current)
        self._current = None
        self._pending_creator = False
        self.state = ParserState.SEEKING_HEADER

    def _junk(self, line: str) -> None:
        self._forward(line)
        self._close()

    def feed(self, line: str) -> None:
        if not line:
            if self._current is None:
                self._forward(line)
            self._close()
            return

        if self.state is ParserState.SEEKING_HEADER:
            match = _HEADER_RE.match(line)
            if match is None:
                self._forward(line)
                return
            self._current = _parse_header(match, first=not self.goroutines)
            self.state = ParserState.UNIT_FIRST_LINE
            return

        if self.state is ParserState.UNIT_FIRST_LINE:
            self.state = ParserState.UNIT_BODY
            if _UNAVAILABLE_RE.match(line):
                self._signature.stack = [Call(source_path=UNAVAILABLE_SOURCE)]
                return

        self._feed_body(line)

    @property
    def _signature(self) -> Signature:
        if self._current is None:
            raise RuntimeError(f"no goroutine open in state {self.state.value}")
        return self._current.signature

    def _feed_body(self, line: str) -> None:
        signature = self._signature

        match = _FILE_RE.match(line)
        if match:
            if self._pending_creator:
                self._pending_creator = False
                target = signature.created_by
            elif signature.stack:
                target = signature.stack[-1]
            else:
                self._junk(line)
                return
            target.source_path = match.group(1)
            target.line = int(match.group(2))
            return

        match = _CREATED_RE.match(line)
        if match:
            self._pending_creator = True
            signature.created_by.func = Function(match.group(1))
            return

        match = _FUNC_RE.match(line)
        if match:
            args = _parse_args(line, match.group(2))
            signature.stack.append(Call(func=Function(match.group(1)), args=args))
            return

        if _ELIDED_RE.match(line):
            signature.stack_elided = True
            return

        self._junk(line)

    def finish(self) -> List[Goroutine]:
        """Close any open goroutine, assign aliases and return the result."""

        self._close()
        name_arguments(self.goroutines)
        LOGGER.debug(
            "parsed %d goroutines, forwarded %d lines",
            len(self.goroutines),
            self.forwarded,
        )
        return self.goroutines


def parse_dump(stream: Iterable[str], out: TextIO) -> List[Goroutine]:
    """Parse the goroutine dump read from *stream*.

    Lines outside the dump grammar are written to *out*.  A malformed call
    argument raises :class:`MalformedArgumentError` and nothing is returned.
    An exception raised by *stream* itself propagates unchanged, with the
    goroutines parsed before the failure attached as its ``goroutines``
    attribute.
    """

    parser = DumpParser(out)
    lines = iter(stream)
    while True:
        try:
            raw = next(lines)
        except StopIteration:
            break
        except Exception as exc:
            goroutines = parser.finish()
            LOGGER.warning("input stream failed after %d goroutines: %s", len(goroutines), exc)
            exc.goroutines = goroutines  # type: ignore[attr-defined]
            raise
        line = raw.rstrip("\n")
        if line.endswith("\r"):
            line = line[:-1]
        parser.feed(line)
    return parser.finish()
