"""Running a single exercise and resetting it with git."""

from __future__ import annotations

import subprocess

from .exercise import Exercise, ExerciseFailed, Mode
from .ui import success, warn
from .verify import VerificationFailed, _Spinner, test


def run(exercise: Exercise, verbose: bool) -> None:
    """Build and run one exercise, raising VerificationFailed if it fails."""
    match exercise.mode:
        case Mode.TEST | Mode.BUILD_SCRIPT:
            test(exercise, verbose)
        case Mode.COMPILE | Mode.CLIPPY:
            _compile_and_run(exercise)


def reset(exercise: Exercise) -> subprocess.Popen:
    """Stash the changes made to the exercise's file and return the git process."""
    return subprocess.Popen(["git", "stash", "--", str(exercise.path)])


def _compile_and_run(exercise: Exercise) -> None:
    failure: ExerciseFailed | None = None
    with _Spinner(f"Compiling {exercise}...") as spinner:
        try:
            compiled = exercise.compile()
        except ExerciseFailed as exc:
            spinner.clear()
            warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
            print(exc.output.stderr)
            raise VerificationFailed(exercise) from exc
        with compiled:
            spinner.message = f"Running {exercise}..."
            try:
                output = compiled.run()
            except ExerciseFailed as exc:
                failure = exc

    if failure is not None:
        print(failure.output.stdout)
        print(failure.output.stderr)
        warn(f"Ran {exercise} with errors")
        raise VerificationFailed(exercise) from failure
    print(output.stdout)
    success(f"Successfully ran {exercise}")