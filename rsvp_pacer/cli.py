"""CLI interface with subcommand routing and terminal playback."""

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.text import Text

from rsvp_pacer.clock import AsyncioClock
from rsvp_pacer.config import ReaderConfig, load_config
from rsvp_pacer.constants import CONFIG_FILE, HELP_TEXT, STATE_DIR, VERSION
from rsvp_pacer.errors import ReaderError
from rsvp_pacer.messages import (
    AutoAdvanceChanged,
    CycleChunkSize,
    DisplayChunk,
    Help,
    LoadFailed,
    NextSource,
    PrevSource,
    ResetSpeed,
    Rewind,
    Skip,
    SourceList,
    SourceProgress,
    SpeedChanged,
    SpeedDown,
    SpeedUp,
    Stop,
    Stopped,
    ToggleAutoAdvance,
    ToggleHelp,
    TogglePause,
)
from rsvp_pacer.orp import highlight_chunk, render_word
from rsvp_pacer.segmenter import segment
from rsvp_pacer.session import SessionRegistry
from rsvp_pacer.sources import read_source, scan_paths, source_from_path
from rsvp_pacer.state_store import StateStore
from rsvp_pacer.structurer import structure_source

TITLE_STYLES = {1: "bold magenta", 2: "bold cyan", 3: "bold blue"}
PIVOT_STYLE = "bold red"


def build_keymap(config: ReaderConfig) -> dict:
    """Single-key bindings for interactive playback. 'q' is handled by the loop."""
    return {
        " ": TogglePause(),
        "+": SpeedUp(config.speed_step),
        "=": SpeedUp(config.speed_step),
        "-": SpeedDown(config.speed_step),
        ">": SpeedUp(config.speed_step_big),
        "<": SpeedDown(config.speed_step_big),
        "0": ResetSpeed(),
        "[": Rewind(config.rewind_step),
        "]": Skip(config.skip_step),
        "c": CycleChunkSize(),
        "n": NextSource(),
        "p": PrevSource(),
        "a": ToggleAutoAdvance(),
        "s": Stop(),
        "?": ToggleHelp(),
    }


def orp_text(chunk: str) -> Text:
    """Rich text for a chunk with each word's recognition point highlighted."""
    text = Text()
    for i, word in enumerate(chunk.split(" ")):
        if i:
            text.append(" ")
        split = render_word(word)
        text.append(split.pre)
        if split.has_pivot:
            text.append(split.pivot, style=PIVOT_STYLE)
            text.append(split.post)
    return text


class TerminalSink:
    """Renders session events on a rich console.

    On a terminal the current chunk is redrawn in place; otherwise every
    displayed chunk is printed on its own line.
    """

    def __init__(self, console: Console):
        self.console = console
        self.live: Live | None = None
        self.labels: list[str] = []
        self.active_index = 0
        self._renderers = {
            DisplayChunk: self._render_chunk,
            Stopped: lambda e: self._status("[dim]stopped[/dim]"),
            SpeedChanged: self._render_speed,
            AutoAdvanceChanged: lambda e: self._status(
                f"auto-advance {'on' if e.enabled else 'off'}"
            ),
            SourceList: self._render_source_list,
            SourceProgress: lambda e: None,
            Help: lambda e: self.console.print(f"[dim]{escape(e.text)}[/dim]"),
            LoadFailed: lambda e: self.console.print(f"[red]Could not load {escape(e.source_id)}: {escape(e.message)}[/red]"),
        }

    def __call__(self, event) -> None:
        self._renderers[type(event)](event)

    def _show(self, renderable) -> None:
        if self.live is not None:
            self.live.update(renderable, refresh=True)
        else:
            self.console.print(renderable)

    def _status(self, message: str) -> None:
        if self.live is None:
            self.console.print(message)

    def _render_chunk(self, event: DisplayChunk) -> None:
        if event.type == "title":
            line = Text(event.text, style=TITLE_STYLES.get(event.level, "bold"))
        else:
            line = orp_text(event.text)
        minutes, seconds = divmod(event.estimated_remaining, 60)
        line.append(
            f"    {event.progress_percent:5.1f}% · {event.wpm} wpm · {minutes}:{seconds:02d} left",
            style="dim",
        )
        self._show(line)

    def _render_speed(self, event: SpeedChanged) -> None:
        state = "playing" if event.playing else "paused"
        self._status(f"[cyan]{event.wpm} wpm[/cyan] ({state})")

    def _render_source_list(self, event: SourceList) -> None:
        labels = [entry.label for entry in event.entries]
        if labels == self.labels and event.active_index == self.active_index:
            return
        self.labels = labels
        self.active_index = event.active_index
        if labels:
            entry = event.entries[event.active_index]
            self.console.print(
                f"[bold]{escape(entry.label)}[/bold] "
                f"[dim]({event.active_index + 1}/{len(labels)}, {entry.progress_percent:.0f}% read)[/dim]"
            )


def _build_config(args) -> ReaderConfig:
    return load_config(
        args.config or CONFIG_FILE,
        wpm=args.wpm,
        chunk_size=args.chunk_size,
        pause_duration_ms=args.pause_ms,
        auto_advance=True if args.auto_advance else None,
    )


def _store(args) -> StateStore:
    return StateStore(args.state_dir or STATE_DIR)


async def _play(sources, config: ReaderConfig, store: StateStore, console: Console, interactive: bool) -> LoadFailed | None:
    """Run one session until quit (interactive) or until playback stops.

    Returns the LoadFailed event if the first source could not be loaded.
    That failure is left to the caller to report.
    """
    loop = asyncio.get_running_loop()
    done = asyncio.Event()
    sink = TerminalSink(console)
    started = False
    failure = None

    def emit(event) -> None:
        nonlocal failure
        if not started and isinstance(event, LoadFailed):
            failure = event
            return
        sink(event)
        if started and not interactive and isinstance(event, Stopped):
            done.set()

    registry = SessionRegistry()
    session = registry.create(AsyncioClock(loop), emit, store=store, config=config)
    keymap = build_keymap(config)

    def on_key() -> None:
        key = read_key(sys.stdin.fileno())
        if key == "q":
            done.set()
        elif key in keymap:
            session.handle(keymap[key])

    restore_tty = None
    try:
        if not session.set_sources(sources):
            return failure
        if interactive:
            restore_tty = _enter_cbreak()
            loop.add_reader(sys.stdin.fileno(), on_key)
            console.print(f"[dim]{escape(HELP_TEXT)}[/dim]")
        started = True
        if console.is_terminal:
            with Live(console=console, auto_refresh=False, transient=False) as live:
                sink.live = live
                session.handle(TogglePause())
                await done.wait()
                sink.live = None
        else:
            session.handle(TogglePause())
            await done.wait()
    finally:
        if interactive:
            loop.remove_reader(sys.stdin.fileno())
        if restore_tty is not None:
            restore_tty()
        registry.dispose_all()
    return None


def read_key(fd: int) -> str:
    """Read one keystroke straight from the descriptor.

    Going around sys.stdin's buffer keeps the fd readable while keys are
    still waiting, so every key wakes the loop's reader.
    """
    return os.read(fd, 1).decode(errors="ignore")


def _enter_cbreak():
    """Put stdin in cbreak mode. Returns a callable restoring the old settings."""
    import termios
    import tty

    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    tty.setcbreak(fd)
    return lambda: termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def cmd_read(args):
    """Play one or more sources in the terminal."""
    sources = scan_paths(args.paths)
    if not sources:
        print("Error: No readable sources found.", file=sys.stderr)
        raise SystemExit(1)

    config = _build_config(args)
    console = Console()
    interactive = sys.stdin.isatty()
    try:
        failure = asyncio.run(_play(sources, config, _store(args), console, interactive))
    except KeyboardInterrupt:
        failure = None
    if failure is not None:
        print(f"Error: Could not load {sources[0].label}: {failure.message}", file=sys.stderr)
        raise SystemExit(1)


def cmd_chunks(args):
    """Print the chunk sequence of a source as JSON."""
    if not os.path.exists(args.path):
        print(f"Error: File not found: {args.path}", file=sys.stderr)
        raise SystemExit(1)

    config = _build_config(args)
    source = source_from_path(args.path)
    try:
        units = structure_source(read_source(source), source.format, source.label)
    except ReaderError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    chunks = []
    for chunk in segment(units, config.chunk_size, config.pause_duration_ms):
        entry = {"type": chunk.kind, **asdict(chunk)}
        if chunk.kind != "pause":
            entry["html"] = highlight_chunk(chunk.text)
        chunks.append(entry)
    print(json.dumps(chunks, indent=2, ensure_ascii=False))


def cmd_status(args):
    """List saved reading positions."""
    states = _store(args).list_states()
    if not states:
        print("No saved reading positions.")
        return
    print("Saved positions:")
    for source_id, state in states:
        print(
            f"  [{state.progress_percent:3.0f}%] {os.path.basename(source_id):<30} "
            f"chunk {state.cursor}/{state.total_chunks}, {state.wpm} wpm, chunk size {state.chunk_size}"
        )


def cmd_forget(args):
    """Discard the saved position of a source."""
    source = source_from_path(args.path)
    if _store(args).discard(source.id):
        print(f"Forgot: {source.label}")
    else:
        print(f"No saved position for {source.label}")


def main():
    """CLI entry point."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help=f"JSON config file (default {CONFIG_FILE})")
    common.add_argument("--state-dir", help=f"Saved positions directory (default {STATE_DIR})")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    pacing = argparse.ArgumentParser(add_help=False)
    pacing.add_argument("--wpm", type=int, help="Words per minute (100-1200)")
    pacing.add_argument("--chunk-size", type=int, help="Words per chunk (1-5)")
    pacing.add_argument("--pause-ms", type=int, help="Pause after each title, in ms")
    pacing.add_argument("--auto-advance", action="store_true", help="Continue into the next source")

    parser = argparse.ArgumentParser(
        prog="rsvp-pacer",
        description="RSVP reader — paced single-chunk display of text, Markdown, PDF and EPUB",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # read
    read_parser = subparsers.add_parser("read", parents=[common, pacing], help="Read files or folders")
    read_parser.add_argument("paths", nargs="+", help="Files or folders to read")
    read_parser.set_defaults(func=cmd_read)

    # chunks
    chunks_parser = subparsers.add_parser("chunks", parents=[common, pacing], help="Print the chunk sequence as JSON")
    chunks_parser.add_argument("path", help="Source file")
    chunks_parser.set_defaults(func=cmd_chunks)

    # status
    status_parser = subparsers.add_parser("status", parents=[common], help="List saved reading positions")
    status_parser.set_defaults(func=cmd_status)

    # forget
    forget_parser = subparsers.add_parser("forget", parents=[common], help="Discard a saved reading position")
    forget_parser.add_argument("path", help="Source file")
    forget_parser.set_defaults(func=cmd_forget)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    args.func(args)
