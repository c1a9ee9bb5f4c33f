"""Data model for goroutine dumps.

The types mirror what a Go runtime prints for each goroutine: a header with the
scheduler state, a list of calls (innermost first) and an optional "created by"
call site.  Every type exposes three relations used by the bucketizer:

``equal``
    exact structural identity (``Signature`` ignores sleep and locked).
``similar``
    identity except that pointer-like argument values may differ.
``merge``
    combine two similar values, replacing differing arguments with ``*``.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence
from urllib.parse import unquote_plus

from .config import default_roots

__all__ = [
    "MAX_INT64",
    "POINTER_FLOOR",
    "TEST_MAIN_SOURCE",
    "UNAVAILABLE_SOURCE",
    "Function",
    "Arg",
    "Args",
    "Call",
    "Signature",
    "Goroutine",
]

MAX_INT64 = (1 << 63) - 1
# Pointers are assumed to live above 16MiB.
POINTER_FLOOR = 16 * 1024 * 1024

# Injected by ``go test``; counted as library code.
TEST_MAIN_SOURCE = "_test/_testmain.go"
UNAVAILABLE_SOURCE = "<unavailable>"


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def _dir(path: str) -> str:
    return posixpath.normpath(posixpath.dirname(path) or ".")


@dataclass(frozen=True)
class Function:
    """Fully qualified function name as printed in the dump (percent-escaped)."""

    raw: str = ""

    def __str__(self) -> str:
        return unquote_plus(self.raw)

    def _split(self) -> List[str]:
        return _base(self.raw).split(".", 1)

    @property
    def name(self) -> str:
        """Naked function name, e.g. ``(*Server).Serve``."""

        parts = self._split()
        return parts[0] if len(parts) == 1 else parts[1]

    @property
    def pkg_name(self) -> str:
        parts = self._split()
        if len(parts) == 1:
            return ""
        return unquote_plus(parts[0])

    @property
    def pkg_dot_name(self) -> str:
        parts = self._split()
        if len(parts) == 1:
            return parts[0]
        pkg = unquote_plus(parts[0])
        if pkg or parts[1]:
            return f"{pkg}.{parts[1]}"
        return ""

    @property
    def is_exported(self) -> bool:
        name = self.name
        last = name.split(".")[-1]
        if last[:1].upper() == last[:1]:
            return True
        return self.pkg_name == "main" and name == "main"


@dataclass
class Arg:
    """Raw argument value plus the alias assigned by :func:`name_arguments`."""

    value: int = 0
    name: str = ""

    @property
    def is_ptr(self) -> bool:
        # Only a guess; a large bitmask looks exactly like a pointer.
        return POINTER_FLOOR < self.value < MAX_INT64

    def __str__(self) -> str:
        if self.name:
            return self.name
        if self.value == 0:
            return "0"
        return f"0x{self.value:x}"


@dataclass
class Args:
    """Call arguments; ``elided`` is set when the dump printed a trailing ``...``."""

    values: List[Arg] = field(default_factory=list)
    processed: List[str] = field(default_factory=list)
    elided: bool = False

    def __str__(self) -> str:
        if self.processed:
            items = list(self.processed)
        else:
            items = [str(value) for value in self.values]
        if self.elided:
            items.append("...")
        return ", ".join(items)

    def equal(self, other: "Args") -> bool:
        if self.elided != other.elided or len(self.values) != len(other.values):
            return False
        return all(left == right for left, right in zip(self.values, other.values))

    def similar(self, other: "Args") -> bool:
        """Return True when only pointer-like values differ."""

        if self.elided != other.elided or len(self.values) != len(other.values):
            return False
        for left, right in zip(self.values, other.values):
            if left.is_ptr != right.is_ptr:
                return False
            if not left.is_ptr and left != right:
                return False
        return True

    def merge(self, other: "Args") -> "Args":
        values: List[Arg] = []
        for left, right in zip(self.values, other.values):
            if left != right:
                values.append(Arg(value=left.value, name="*"))
            else:
                values.append(Arg(value=left.value, name=left.name))
        return Args(values=values, elided=self.elided)


@dataclass
class Call:
    """One frame of a call stack."""

    source_path: str = ""
    line: int = 0
    func: Function = field(default_factory=Function)
    args: Args = field(default_factory=Args)

    def _same_site(self, other: "Call") -> bool:
        return (
            self.source_path == other.source_path
            and self.line == other.line
            and self.func == other.func
        )

    def equal(self, other: "Call") -> bool:
        return self._same_site(other) and self.args.equal(other.args)

    def similar(self, other: "Call") -> bool:
        return self._same_site(other) and self.args.similar(other.args)

    def merge(self, other: "Call") -> "Call":
        return Call(
            source_path=self.source_path,
            line=self.line,
            func=self.func,
            args=self.args.merge(other.args),
        )

    @property
    def source_name(self) -> str:
        return _base(self.source_path)

    @property
    def source_line(self) -> str:
        return f"{self.source_name}:{self.line}"

    @property
    def full_source_line(self) -> str:
        return f"{self.source_path}:{self.line}"

    @property
    def pkg_source(self) -> str:
        """Parent directory name plus file name, e.g. ``http/server.go``."""

        return posixpath.normpath(posixpath.join(_base(_dir(self.source_path)), self.source_name))

    def is_stdlib(self, roots: Optional[Sequence[str]] = None) -> bool:
        """Return True for frames under a known installation root."""

        known = default_roots() if roots is None else roots
        if any(self.source_path.startswith(root) for root in known):
            return True
        return self.pkg_source == TEST_MAIN_SOURCE

    @property
    def is_pkg_main(self) -> bool:
        return self.func.pkg_name == "main"


@dataclass
class Signature:
    """State and stack shared by one or more goroutines."""

    # Open set of labels: "running", "chan receive", "IO wait", "select", ...
    state: str = ""
    sleep: int = 0
    locked: bool = False
    stack: List[Call] = field(default_factory=list)
    stack_elided: bool = False
    created_by: Call = field(default_factory=Call)

    def _same_shape(self, other: "Signature") -> bool:
        return (
            self.state == other.state
            and len(self.stack) == len(other.stack)
            and self.stack_elided == other.stack_elided
        )

    def equal(self, other: "Signature") -> bool:
        if not self._same_shape(other) or not self.created_by.equal(other.created_by):
            return False
        return all(left.equal(right) for left, right in zip(self.stack, other.stack))

    def similar(self, other: "Signature") -> bool:
        if not self._same_shape(other) or not self.created_by.similar(other.created_by):
            return False
        return all(left.similar(right) for left, right in zip(self.stack, other.stack))

    def merge(self, other: "Signature") -> "Signature":
        """Return a new signature combining two similar ones."""

        return Signature(
            state=self.state,
            sleep=(self.sleep + other.sleep + 1) // 2,
            locked=self.locked or other.locked,
            stack=[left.merge(right) for left, right in zip(self.stack, other.stack)],
            # Keep the flag so later elided goroutines still match the merged key.
            stack_elided=self.stack_elided,
            created_by=self.created_by,
        )

    def copy(self) -> "Signature":
        return replace(self, stack=list(self.stack))


@dataclass
class Goroutine:
    """A single goroutine as listed in the dump."""

    signature: Signature
    id: int
    # The first goroutine printed is normally the one that crashed.
    first: bool = False
