"""Streaming response rendering — plain-text output, written as it arrives."""

from typing import Iterable

from rich.console import Console

__all__ = ["render_stream"]


def _write_raw(console: Console, chunk: str) -> None:
    """Write a text chunk directly to the underlying stream (no processing)."""
    if not chunk:
        return
    stream = getattr(console, "file", None)
    if stream is not None and hasattr(stream, "write"):
        stream.write(chunk)
        if hasattr(stream, "flush"):
            stream.flush()
        return
    console.print(chunk, end="", markup=False, highlight=False, soft_wrap=True)


def render_stream(console: Console, fragments: Iterable[str]) -> str:
    """Echo each fragment once, in arrival order, and return their concatenation.

    Exceptions from the fragment source propagate after the current output
    line is terminated.
    """
    parts = []
    try:
        for fragment in fragments:
            if not fragment:
                continue
            _write_raw(console, fragment)
            parts.append(fragment)
    finally:
        _write_raw(console, "\n")
    return "".join(parts)
