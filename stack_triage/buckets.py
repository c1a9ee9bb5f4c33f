"""Group goroutines by signature and order the groups for display."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import default_roots
from .model import Goroutine, Signature

LOGGER = logging.getLogger(__name__)

__all__ = ["Bucket", "bucketize", "bucket_less", "signature_less", "sort_buckets"]


@dataclass
class Bucket:
    """A representative signature and the goroutines assigned to it."""

    signature: Signature
    goroutines: List[Goroutine] = field(default_factory=list)

    @property
    def first(self) -> bool:
        return any(goroutine.first for goroutine in self.goroutines)


def bucketize(goroutines: Iterable[Goroutine], aggressive: bool) -> List[Bucket]:
    """Group *goroutines* into buckets.

    Each goroutine joins the first bucket, in creation order, whose signature
    is equal (or similar when *aggressive*).  A similar but unequal match
    replaces that bucket with one keyed by the merged signature.  This is a
    greedy O(n²) scan; similarity is not transitive so the grouping depends on
    input order.
    """

    buckets: List[Bucket] = []
    merges = 0
    for goroutine in goroutines:
        signature = goroutine.signature
        for slot, bucket in enumerate(buckets):
            key = bucket.signature
            if not aggressive:
                if key.equal(signature):
                    bucket.goroutines.append(goroutine)
                    break
                continue
            if not key.similar(signature):
                continue
            if key.equal(signature):
                bucket.goroutines.append(goroutine)
            else:
                # Same calls with different pointers; zap the differences.
                buckets[slot] = Bucket(key.merge(signature), bucket.goroutines + [goroutine])
                merges += 1
            break
        else:
            buckets.append(Bucket(signature.copy(), [goroutine]))

    LOGGER.debug(
        "bucketized %d goroutines into %d buckets (aggressive=%s, merges=%d)",
        sum(len(bucket.goroutines) for bucket in buckets),
        len(buckets),
        aggressive,
        merges,
    )
    return buckets


def _frame_counts(signature: Signature, roots: Sequence[str]) -> Tuple[int, int]:
    stdlib = sum(1 for call in signature.stack if call.is_stdlib(roots))
    return stdlib, len(signature.stack) - stdlib


def signature_less(left: Signature, right: Signature, roots: Optional[Sequence[str]] = None) -> bool:
    """Return True when *left* is more interesting than *right*.

    Signatures with more non-library frames come first; with equal counts the
    one with fewer library frames wins.  The per-frame comparison reports
    "less" as soon as a frame differs in either direction.
    """

    known = default_roots() if roots is None else roots
    left_stdlib, left_private = _frame_counts(left, known)
    right_stdlib, right_private = _frame_counts(right, known)
    if left_private != right_private:
        return left_private > right_private
    if left_stdlib != right_stdlib:
        return left_stdlib < right_stdlib

    # Stack lengths are the same here.
    for left_call, right_call in zip(left.stack, right.stack):
        if left_call.func.raw != right_call.func.raw:
            return True
        if left_call.pkg_source != right_call.pkg_source:
            return True
        if left_call.line != right_call.line:
            return True
    return left.state < right.state


def bucket_less(left: Bucket, right: Bucket, roots: Optional[Sequence[str]] = None) -> bool:
    if left.first:
        return True
    if right.first:
        return False
    return signature_less(left.signature, right.signature, roots)


def sort_buckets(buckets: Iterable[Bucket], roots: Optional[Sequence[str]] = None) -> List[Bucket]:
    """Return *buckets* ordered most interesting first."""

    known = tuple(default_roots() if roots is None else roots)

    def compare(left: Bucket, right: Bucket) -> int:
        if bucket_less(left, right, known):
            return -1
        if bucket_less(right, left, known):
            return 1
        return 0

    return sorted(buckets, key=functools.cmp_to_key(compare))
