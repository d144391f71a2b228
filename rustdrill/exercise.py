"""Exercises: their description, compilation, execution and completion state."""

from __future__ import annotations

import enum
import os
import re
import subprocess
import threading
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

_COLOR_ARGS = ("--color", "always")
_EDITION_ARGS = ("--edition", "2021")
_I_AM_DONE = re.compile(r"^\s*///?\s*I\s+AM\s+NOT\s+DONE", re.MULTILINE)
CONTEXT = 2
CLIPPY_CARGO_TOML_PATH = "./exercises/clippy/Cargo.toml"
BUILD_SCRIPT_CARGO_TOML_PATH = "./exercises/tests/Cargo.toml"


def temp_file_path() -> str:
    """Return a scratch binary path unique to this process and thread."""
    return f"./temp_{os.getpid()}_{threading.get_ident()}"


def clean() -> None:
    """Remove the scratch binary, ignoring a missing file."""
    try:
        os.remove(temp_file_path())
    except OSError:
        pass


class Mode(enum.Enum):
    """How an exercise is built and checked."""

    COMPILE = "compile"
    TEST = "test"
    CLIPPY = "clippy"
    BUILD_SCRIPT = "buildscript"


@dataclass(frozen=True)
class ContextLine:
    """A source line shown around the pending marker."""

    line: str
    number: int
    important: bool


@dataclass(frozen=True)
class Pending:
    """State of an exercise that still carries its marker comment."""

    context: tuple[ContextLine, ...]


@dataclass(frozen=True)
class ExerciseOutput:
    """Captured output of a finished command."""

    stdout: str
    stderr: str


class ExerciseFailed(Exception):
    """A compile or run step exited unsuccessfully."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__(output.stderr or output.stdout)
        self.output = output


def _output(result: subprocess.CompletedProcess) -> ExerciseOutput:
    return ExerciseOutput(
        stdout=result.stdout.decode("utf-8", errors="replace"),
        stderr=result.stderr.decode("utf-8", errors="replace"),
    )


def _capture(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(args, capture_output=True)


def _lines(text: str) -> list[str]:
    parts = text.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


class CompiledExercise:
    """A successfully compiled exercise; closing it removes the binary."""

    def __init__(self, exercise: Exercise) -> None:
        self.exercise = exercise

    def run(self) -> ExerciseOutput:
        """Run the compiled exercise, raising ExerciseFailed on failure."""
        return self.exercise._run()

    def close(self) -> None:
        """Remove the scratch binary."""
        clean()

    def __enter__(self) -> CompiledExercise:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass
class Exercise:
    """One exercise as described in info.toml."""

    name: str
    path: Path
    mode: Mode
    hint: str = field(default="")

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self.mode = Mode(self.mode)

    def __str__(self) -> str:
        return str(self.path)

    def _write_manifest(self, manifest: str) -> None:
        text = (
            "[package]\n"
            f'name = "{self.name}"\n'
            'version = "0.0.1"\n'
            'edition = "2021"\n'
            "[[bin]]\n"
            f'name = "{self.name}"\n'
            f'path = "{self.name}.rs"'
        )
        if "NO_EMOJI" in os.environ:
            message = "Failed to write Clippy Cargo.toml file."
        else:
            message = "Failed to write 📎 Clippy 📎 Cargo.toml file."
        try:
            Path(manifest).write_text(text, encoding="utf-8")
        except OSError as exc:
            raise OSError(message) from exc

    def compile(self) -> CompiledExercise:
        """Build the exercise according to its mode.

        Raises ExerciseFailed with the captured output if the build fails.
        """
        source = str(self.path)
        target = temp_file_path()
        rustc = ["rustc", source, "-o", target, *_COLOR_ARGS, *_EDITION_ARGS]
        match self.mode:
            case Mode.COMPILE:
                result = _capture(rustc)
            case Mode.TEST:
                result = _capture(
                    ["rustc", "--test", source, "-o", target, *_COLOR_ARGS, *_EDITION_ARGS]
                )
            case Mode.CLIPPY:
                self._write_manifest(CLIPPY_CARGO_TOML_PATH)
                # Build a runnable binary too; a failure here shows up in clippy below.
                _capture(rustc)
                _capture(["cargo", "clean", "--manifest-path", CLIPPY_CARGO_TOML_PATH, *_COLOR_ARGS])
                result = _capture(
                    [
                        "cargo", "clippy", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                        *_COLOR_ARGS, "--", "-D", "warnings", "-D", "clippy::float_cmp",
                    ]
                )
            case Mode.BUILD_SCRIPT:
                self._write_manifest(BUILD_SCRIPT_CARGO_TOML_PATH)
                result = _capture(["cargo", "test", "--manifest-path", BUILD_SCRIPT_CARGO_TOML_PATH])
        if result.returncode == 0:
            return CompiledExercise(self)
        clean()
        raise ExerciseFailed(_output(result))

    def _run(self) -> ExerciseOutput:
        match self.mode:
            case Mode.BUILD_SCRIPT:
                return ExerciseOutput(stdout="", stderr="")
            case Mode.TEST:
                args = [temp_file_path(), "--show-output"]
            case _:
                args = [temp_file_path()]
        result = _capture(args)
        output = _output(result)
        if result.returncode != 0:
            raise ExerciseFailed(output)
        return output

    def state(self) -> Pending | None:
        """Return Pending with context lines, or None when the exercise is done."""
        source = self.path.read_text(encoding="utf-8")
        if not _I_AM_DONE.search(source):
            return None
        lines = _lines(source)
        matched = next((i for i, line in enumerate(lines) if _I_AM_DONE.search(line)), None)
        if matched is None:
            raise RuntimeError("This should not happen at all")
        low = max(matched - CONTEXT, 0)
        high = matched + CONTEXT
        context = tuple(
            ContextLine(line=line, number=i + 1, important=i == matched)
            for i, line in enumerate(lines)
            if low <= i <= high
        )
        return Pending(context)

    def looks_done(self) -> bool:
        """Whether the marker comment has been removed from the exercise."""
        return self.state() is None


def parse_exercises(text: str) -> list[Exercise]:
    """Parse the exercise list from info.toml text."""
    data = tomllib.loads(text)
    try:
        entries = data["exercises"]
        return [
            Exercise(
                name=str(entry["name"]),
                path=Path(entry["path"]),
                mode=Mode(entry["mode"]),
                hint=str(entry["hint"]),
            )
            for entry in entries
        ]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"invalid exercise list: {exc}") from exc


def load_exercises(path: str | os.PathLike[str]) -> list[Exercise]:
    """Read and parse an info.toml file."""
    return parse_exercises(Path(path).read_text(encoding="utf-8"))