"""Watch mode: re-verify exercises whenever their files change."""

from __future__ import annotations

import enum
import os
import queue
import subprocess
import sys
import threading
from collections.abc import Iterable
from pathlib import Path, PurePath
from typing import TextIO

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .exercise import Exercise
from .verify import VerificationFailed, verify

_HELP = """Commands available to you in watch mode:
  hint   - prints the current exercise's hint
  clear  - clears the screen
  quit   - quits watch mode
  !<cmd> - executes a command, like `!rustc --explain E0381`
  help   - displays this help message

Watch mode automatically re-evaluates the current exercise
when you edit a file's contents."""


class WatchStatus(enum.Enum):
    """How watch mode ended."""

    FINISHED = "finished"
    UNFINISHED = "unfinished"


class WatchShell:
    """The interactive command reader that runs alongside watch mode."""

    def __init__(self, hint: str | None = None, stream: TextIO | None = None) -> None:
        self.hint = hint
        self.quit_requested = threading.Event()
        self._stream = stream

    def handle(self, line: str) -> None:
        """Carry out one command typed by the user."""
        command = line.strip()
        if command == "hint":
            if self.hint is not None:
                print(self.hint)
        elif command == "clear":
            print("\x1b[2J\x1b[1;1H")
        elif command == "quit":
            self.quit_requested.set()
            print("Bye!")
        elif command == "help":
            print(_HELP)
        elif command.startswith("!"):
            cmd = command[1:]
            parts = cmd.split()
            if not parts:
                print("no command provided")
                return
            try:
                subprocess.run(parts)
            except OSError as exc:
                print(f"failed to execute command `{cmd}`: {exc}")
        else:
            print(f"unknown command: {command}")

    def start(self) -> threading.Thread:
        """Greet the user and start reading commands on a background thread."""
        print(
            "Welcome to watch mode! You can type 'help' to get an overview "
            "of the commands you can use here."
        )
        thread = threading.Thread(target=self._read_loop, daemon=True)
        thread.start()
        return thread

    def _read_loop(self) -> None:
        stream = self._stream if self._stream is not None else sys.stdin
        while True:
            try:
                line = stream.readline()
            except (OSError, ValueError) as exc:
                print(f"error reading command: {exc}")
                return
            if not line:
                return
            self.handle(line)


def _ends_with(path: PurePath, suffix: PurePath) -> bool:
    tail = suffix.parts
    return bool(tail) and path.parts[-len(tail):] == tail


def pending_order(
    exercises: Iterable[Exercise], changed_path: str | os.PathLike[str]
) -> list[Exercise]:
    """The changed exercise first, then every other exercise that is not done."""
    changed = PurePath(changed_path)
    exercises = list(exercises)
    first = next((e for e in exercises if _ends_with(changed, e.path)), None)
    rest = [e for e in exercises if not e.looks_done() and not _ends_with(changed, e.path)]
    return ([first] if first is not None else []) + rest


def _clear_screen() -> None:
    print("\x1bc")


class _RustFileHandler(FileSystemEventHandler):
    def __init__(self, events: queue.Queue[str]) -> None:
        super().__init__()
        self._events = events

    def _record(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = os.fsdecode(event.src_path)
        if path.endswith(".rs") and os.path.exists(path):
            self._events.put(path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._record(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._record(event)


def _next_change(events: queue.Queue[str]) -> str | None:
    try:
        changed = events.get(timeout=1)
    except queue.Empty:
        return None
    # Collapse a burst of notifications for the same file into one.
    while True:
        try:
            following = events.get_nowait()
        except queue.Empty:
            return changed
        if following != changed:
            events.put(following)
            return changed


def watch(exercises: Iterable[Exercise], verbose: bool, success_hints: bool) -> WatchStatus:
    """Verify exercises, then re-verify on every change until done or told to quit."""
    exercises = list(exercises)
    events: queue.Queue[str] = queue.Queue()
    observer = Observer()
    observer.schedule(_RustFileHandler(events), "./exercises", recursive=True)
    observer.start()
    try:
        _clear_screen()
        try:
            verify(exercises, (0, len(exercises)), verbose, success_hints)
            return WatchStatus.FINISHED
        except VerificationFailed as exc:
            shell = WatchShell(exc.exercise.hint)
        shell.start()
        while True:
            changed = _next_change(events)
            if changed is not None:
                filepath = Path(changed).resolve()
                ordered = pending_order(exercises, filepath)
                num_done = sum(1 for e in exercises if e.looks_done())
                _clear_screen()
                try:
                    verify(ordered, (num_done, len(exercises)), verbose, success_hints)
                    return WatchStatus.FINISHED
                except VerificationFailed as exc:
                    shell.hint = exc.exercise.hint
            if shell.quit_requested.is_set():
                return WatchStatus.UNFINISHED
    finally:
        observer.stop()
        observer.join()