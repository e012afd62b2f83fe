"""
Terminal rendering of test output.

Two presentation modes exist:

- snapshot mode (`print_output`) redraws the whole result set in place on
  every tick, with an animated glyph for unfinished nodes;
- streaming mode (`print_partial_output`) appends each node's result once,
  as soon as it is complete.
"""

from __future__ import annotations

import io
import json
import sys
import threading
from pathlib import Path
from typing import Any, Optional, Set, TextIO

from rich.console import Console
from rich.live import Live
from rich.text import Text

from perfops.api.models import NO_DATA, TIMEOUT_SENTINEL, Node, RunOutput, RunResult, TestKind
from perfops.cli.spinner import Spinner

TIMEOUT_MESSAGE = (
    "The command timed-out. It either took too long to execute "
    "or we could not connect to your target at all."
)


def frame_text(frame: str, limit: bool) -> Text:
    """
    Build the renderable for a snapshot frame.

    A limited frame is cropped to the console width in cells instead of
    wrapping, so every line stays on one terminal row.
    """
    if frame.endswith("\n"):
        frame = frame[:-1]
    if limit:
        return Text(frame, no_wrap=True, overflow="crop")
    return Text(frame)


class Formatter:
    """
    Buffers rendered output and writes it to a rich console.

    Snapshot frames go to a `Live` display that redraws in place and is
    cropped to the terminal height; streamed text is printed below
    everything written so far.

    Args:
        print_id: Print the test ID above each snapshot frame
        console: Target console (defaults to stdout)
        spinner: Progress indicator; one sharing the formatter lock is created if omitted
    """

    def __init__(
        self,
        print_id: bool = False,
        console: Optional[Console] = None,
        spinner: Optional[Spinner] = None,
    ):
        self.print_id = print_id
        self.console = console or Console()
        self._lock = threading.RLock()
        self.spinner = spinner or Spinner(console=self.console, lock=self._lock)
        self._live: Optional[Live] = None
        self._buf = io.StringIO()

    @property
    def out(self) -> TextIO:
        return self.console.file

    def start_spinner(self) -> None:
        self.spinner.start()

    def stop_spinner(self) -> None:
        self.spinner.stop()

    def write(self, text: str) -> None:
        """Append text to the pending frame."""
        with self._lock:
            self._buf.write(text)

    def _take(self) -> str:
        out = self._buf.getvalue()
        self._buf = io.StringIO()
        return out

    def flush(self, limit: bool) -> None:
        """
        Replace the displayed frame with the buffered one.

        Args:
            limit: Crop the frame to the terminal size
        """
        with self._lock:
            out = self._take()
            if not out:
                return
            text = frame_text(out, limit)
            overflow = "crop" if limit else "visible"
            if self._live is None:
                self._live = Live(
                    text,
                    console=self.console,
                    auto_refresh=False,
                    vertical_overflow=overflow,
                )
                self._live.start(refresh=True)
                return
            self._live.vertical_overflow = overflow
            self._live.update(text, refresh=True)

    def close(self) -> None:
        """End the live display, leaving the last frame on screen."""
        with self._lock:
            live, self._live = self._live, None
            if live is None:
                return
            live.stop()
            # Live ends the last line itself only on terminals.
            if not self.console.is_terminal:
                self.console.line()

    def flush_lines(self) -> None:
        """Print the buffered text below everything written so far."""
        with self._lock:
            out = self._take()
            if not out:
                return
            self.console.print(
                out, end="", markup=False, highlight=False, emoji=False, soft_wrap=True
            )


def node_header(node: Optional[Node]) -> str:
    if node is None:
        return "Node?"
    return f"Node{node.id}, {node.city}, {node.country_name}"


def output_text(result: RunResult, kind: Optional[TestKind] = None) -> str:
    """Return the printable output of a result, decoded for the test kind."""
    if kind is TestKind.DNS_PERF:
        text = result.perf_output()
    elif kind is TestKind.DNS_RESOLVE:
        text = "\n".join(result.resolve_output())
    else:
        text = result.display_output()
    if text == TIMEOUT_SENTINEL:
        return TIMEOUT_MESSAGE
    return text


def render_frame(
    output: RunOutput,
    glyph: str = "",
    print_id: bool = False,
    kind: Optional[TestKind] = None,
) -> str:
    """Render a whole snapshot; unfinished parts are marked with `glyph`."""
    parts = []
    if print_id:
        parts.append(f"Test ID: {output.id}\n")
    finished = output.is_finished()
    if not finished:
        line = glyph
        if output.items:
            line += f" {output.finished_count()}/{len(output.items)}"
        parts.append(line + "\n")
    for item in output.items:
        r = item.result
        if r is None:
            continue
        if not r.message:
            parts.append(f"{node_header(r.node)}\n{output_text(r, kind)}\n")
        elif r.message != NO_DATA:
            parts.append(f"{node_header(r.node)}\n{r.message}\n")
        if not finished and not r.is_finished():
            parts.append(f"{glyph}\n")
    return "".join(parts)


def print_output(f: Formatter, output: RunOutput, kind: Optional[TestKind] = None) -> None:
    """Redraw the full snapshot in place."""
    glyph = f.spinner.step()
    f.write(render_frame(output, glyph, f.print_id, kind))
    finished = output.is_finished()
    f.flush(not finished)
    if finished:
        f.close()


def print_partial_output(
    f: Formatter,
    output: RunOutput,
    printed_ids: Set[str],
    kind: Optional[TestKind] = None,
) -> None:
    """
    Print the items of a snapshot that have not been printed yet.

    Items still reporting NO DATA are neither printed nor remembered, so
    they are picked up by a later poll. Items are told apart by ID, by node
    when the ID is empty, and by position when both are missing.
    """
    for i, item in enumerate(output.items):
        key = item.key or f"#{i}"
        if key in printed_ids:
            continue
        r = item.result
        if r is None:
            continue
        if not r.message:
            printed_ids.add(key)
            f.write(f"{node_header(r.node)}\n{output_text(r, kind)}\n")
        elif r.message != NO_DATA:
            printed_ids.add(key)
            f.write(f"{node_header(r.node)}\n{r.message}\n")
    f.flush_lines()


def print_output_json(data: Any, stream: Optional[TextIO] = None) -> None:
    """Print a run output, or any JSON-serializable value, as one line of JSON."""
    if isinstance(data, RunOutput):
        data = data.to_wire()
    out = stream or sys.stdout
    out.write(json.dumps(data, separators=(",", ":"), ensure_ascii=False) + "\n")
    out.flush()


def output_to_file(output: RunOutput, path: Path, kind: Optional[TestKind] = None) -> None:
    """Write the rendered snapshot to a file, without terminal control sequences."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_frame(output, kind=kind), encoding="utf-8")
