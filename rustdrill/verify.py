"""Verification of exercises: build, run, and check for the pending marker."""

from __future__ import annotations

import os
import sys
import threading
from collections.abc import Iterable

from tqdm import tqdm

from .exercise import CompiledExercise, Exercise, ExerciseFailed, Mode
from .ui import blue, bold, success, warn


class VerificationFailed(Exception):
    """An exercise failed to build, failed to run, or is still pending."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"{exercise} did not pass")
        self.exercise = exercise


class _StepFailed(Exception):
    """A compile or run step failed; its output has already been shown."""


class _Spinner:
    """A transient one-line spinner on standard error, shown only on a terminal."""

    _FRAMES = "⠁⠂⠄⡀⢀⠠⠐⠈"

    def __init__(self, message: str) -> None:
        self.message = message
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        try:
            self._active = sys.stderr.isatty()
        except (AttributeError, ValueError):
            self._active = False

    def __enter__(self) -> _Spinner:
        if self._active:
            self._thread = threading.Thread(target=self._tick, daemon=True)
            self._thread.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.clear()

    def _tick(self) -> None:
        frame = 0
        while not self._stop.wait(0.1):
            sys.stderr.write(f"\r{self._FRAMES[frame % len(self._FRAMES)]} {self.message}\x1b[K")
            sys.stderr.flush()
            frame += 1

    def clear(self) -> None:
        """Stop the spinner and erase its line."""
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join()
        self._thread = None
        sys.stderr.write("\r\x1b[K")
        sys.stderr.flush()


def _separator() -> str:
    return bold("====================")


def _compile(exercise: Exercise, spinner: _Spinner) -> CompiledExercise:
    try:
        return exercise.compile()
    except ExerciseFailed as exc:
        spinner.clear()
        warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
        print(exc.output.stderr)
        raise _StepFailed from exc


def _compile_only(exercise: Exercise, success_hints: bool) -> bool:
    with _Spinner(f"Compiling {exercise}...") as spinner:
        _compile(exercise, spinner).close()
    return prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(exercise: Exercise, success_hints: bool) -> bool:
    failure: ExerciseFailed | None = None
    with _Spinner(f"Compiling {exercise}...") as spinner:
        with _compile(exercise, spinner) as compiled:
            spinner.message = f"Running {exercise}..."
            try:
                output = compiled.run()
            except ExerciseFailed as exc:
                failure = exc
    if failure is not None:
        warn(f"Ran {exercise} with errors")
        print(failure.output.stdout)
        print(failure.output.stderr)
        raise _StepFailed from failure
    return prompt_for_completion(exercise, output.stdout, success_hints)


def _compile_and_test(
    exercise: Exercise, interactive: bool, verbose: bool, success_hints: bool
) -> bool:
    failure: ExerciseFailed | None = None
    with _Spinner(f"Testing {exercise}...") as spinner:
        with _compile(exercise, spinner) as compiled:
            try:
                output = compiled.run()
            except ExerciseFailed as exc:
                failure = exc
    if failure is not None:
        warn(f"Testing of {exercise} failed! Please try again. Here's the output:")
        print(failure.output.stdout)
        raise _StepFailed from failure
    if verbose:
        print(output.stdout)
    if interactive:
        return prompt_for_completion(exercise, None, success_hints)
    return True


def _check(exercise: Exercise, verbose: bool, success_hints: bool) -> bool:
    try:
        match exercise.mode:
            case Mode.TEST | Mode.BUILD_SCRIPT:
                return _compile_and_test(exercise, True, verbose, success_hints)
            case Mode.COMPILE:
                return _compile_and_run_interactively(exercise, success_hints)
            case Mode.CLIPPY:
                return _compile_only(exercise, success_hints)
    except _StepFailed:
        return False
    return False


def verify(
    exercises: Iterable[Exercise],
    progress: tuple[int, int],
    verbose: bool,
    success_hints: bool,
) -> None:
    """Check exercises in order, raising VerificationFailed at the first that does not pass."""
    num_done, total = progress
    percentage = num_done / total * 100.0 if total else 100.0
    with tqdm(
        total=total,
        initial=num_done,
        bar_format="Progress: [{bar:60}] {n}/{total} {postfix}",
        ascii="-#",
    ) as bar:
        bar.set_postfix_str(f"({percentage:.1f} %)")
        for exercise in exercises:
            if not _check(exercise, verbose, success_hints):
                raise VerificationFailed(exercise)
            if total:
                percentage += 100.0 / total
            bar.update(1)
            bar.set_postfix_str(f"({percentage:.1f} %)")


def test(exercise: Exercise, verbose: bool) -> None:
    """Build and run an exercise's test harness without prompting."""
    try:
        _compile_and_test(exercise, False, verbose, False)
    except _StepFailed as exc:
        raise VerificationFailed(exercise) from exc


def prompt_for_completion(
    exercise: Exercise, prompt_output: str | None, success_hints: bool
) -> bool:
    """Return True if the exercise is done; otherwise show where the marker is and return False."""
    state = exercise.state()
    if state is None:
        return True

    match exercise.mode:
        case Mode.COMPILE:
            success(f"Successfully ran {exercise}!")
        case Mode.TEST:
            success(f"Successfully tested {exercise}!")
        case Mode.CLIPPY | Mode.BUILD_SCRIPT:
            success(f"Successfully compiled {exercise}!")

    no_emoji = "NO_EMOJI" in os.environ
    if no_emoji:
        clippy_message = "The code is compiling, and Clippy is happy!"
    else:
        clippy_message = "The code is compiling, and 📎 Clippy 📎 is happy!"
    messages = {
        Mode.COMPILE: "The code is compiling!",
        Mode.TEST: "The code is compiling, and the tests pass!",
        Mode.CLIPPY: clippy_message,
        Mode.BUILD_SCRIPT: "Build script works!",
    }
    success_message = messages[exercise.mode]

    print()
    if no_emoji:
        print(f"~*~ {success_message} ~*~")
    else:
        print(f"🎉 🎉  {success_message} 🎉 🎉")
    print()

    if prompt_output is not None:
        print("Output:")
        print(_separator())
        print(prompt_output)
        print(_separator())
        print()
    if success_hints:
        print("Hints:")
        print(_separator())
        print(exercise.hint)
        print(_separator())
        print()

    print("You can keep working on this exercise,")
    print(f"or jump into the next one by removing the {bold('`I AM NOT DONE`')} comment:")
    print()
    for context_line in state.context:
        text = bold(context_line.line) if context_line.important else context_line.line
        print(f"{blue(bold(f'{context_line.number:>2}'))} {blue('|')}  {text}")

    return False