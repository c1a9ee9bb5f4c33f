"""Plain-text rendering of ordered buckets."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .buckets import Bucket
from .model import Call

__all__ = ["render_bucket_header", "render_buckets"]


def render_bucket_header(bucket: Bucket) -> str:
    """Return ``"<count>: <state> [N minutes] [locked]"`` for *bucket*."""

    signature = bucket.signature
    text = f"{len(bucket.goroutines)}: {signature.state}"
    if signature.sleep:
        text += f" [{signature.sleep} minutes]"
    if signature.locked:
        text += " [locked]"
    return text


def _source(call: Call, full_path: bool) -> str:
    return call.full_source_line if full_path else call.source_line


def _widths(buckets: Sequence[Bucket], full_path: bool) -> Tuple[int, int]:
    pkg_width = 0
    src_width = 0
    for bucket in buckets:
        for call in bucket.signature.stack:
            pkg_width = max(pkg_width, len(call.func.pkg_name))
            src_width = max(src_width, len(_source(call, full_path)))
    return pkg_width, src_width


def render_buckets(buckets: Sequence[Bucket], *, full_path: bool = False, roots: Optional[Sequence[str]] = None) -> str:
    """Format *buckets* (already ordered) as aligned text.

    ``roots`` only affects the ``*`` marker placed before library frames.
    """

    pkg_width, src_width = _widths(buckets, full_path)
    blocks: List[str] = []
    for bucket in buckets:
        lines = [render_bucket_header(bucket)]
        for call in bucket.signature.stack:
            marker = "*" if call.is_stdlib(roots) else " "
            pkg = call.func.pkg_name.ljust(pkg_width)
            src = _source(call, full_path).ljust(src_width)
            lines.append(f"   {marker}{pkg} {src} {call.func.name}({call.args})")
        if bucket.signature.stack_elided:
            lines.append("    (...)")
        created_by = bucket.signature.created_by
        if created_by.func.raw:
            text = f"    created by {created_by.func.pkg_dot_name}"
            if created_by.source_path:
                text += f" @ {_source(created_by, full_path)}"
            lines.append(text)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + ("\n" if blocks else "")
