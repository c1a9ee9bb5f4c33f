"""Stable pseudo names for pointer arguments.

Absolute addresses differ from one crash to the next, so pointer-like values
are renamed ``#1``, ``#2``, ... in a deterministic order.  Values shared inside
the first goroutine are numbered first, then every value that never appears
in it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .model import Arg, Goroutine

LOGGER = logging.getLogger(__name__)

__all__ = ["name_arguments"]


@dataclass
class _Occurrences:
    args: List[Arg] = field(default_factory=list)
    in_primary: bool = False


def _collect(goroutines: Sequence[Goroutine]) -> Dict[int, _Occurrences]:
    objects: Dict[int, _Occurrences] = {}
    for index, goroutine in enumerate(goroutines):
        # created_by arguments are never populated by the parser.
        for call in goroutine.signature.stack:
            for arg in call.args.values:
                if not arg.is_ptr:
                    continue
                entry = objects.setdefault(arg.value, _Occurrences())
                entry.args.append(arg)
                entry.in_primary = entry.in_primary or index == 0
    return objects


def name_arguments(goroutines: Sequence[Goroutine]) -> int:
    """Assign aliases in place and return how many distinct values were named.

    A pointer seen only once in the first goroutine keeps its raw value while a
    pointer seen once anywhere else is still named.
    """

    objects = _collect(goroutines)
    next_id = 1

    for value in sorted(objects):
        entry = objects[value]
        if len(entry.args) > 1 and entry.in_primary:
            for arg in entry.args:
                arg.name = f"#{next_id}"
            next_id += 1

    for value in sorted(objects):
        entry = objects[value]
        if entry.in_primary:
            continue
        for arg in entry.args:
            arg.name = f"#{next_id}"
        next_id += 1

    LOGGER.debug("aliased %d of %d pointer values", next_id - 1, len(objects))
    return next_id - 1
