import subprocess
from pathlib import Path

import pytest

from rustdrill import exercise as ex
from rustdrill.exercise import (
    ContextLine,
    Exercise,
    ExerciseFailed,
    Mode,
    Pending,
    clean,
    load_exercises,
    parse_exercises,
    temp_file_path,
)

PENDING = "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n"
FINISHED = "// fake_exercise\n\nfn main() {\n\n}\n"


class FakeRun:
    def __init__(self, returncode=0, stdout=b"", stderr=b""):
        self.calls = []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    def __call__(self, args, **kwargs):
        self.calls.append(list(args))
        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_pending_state(tmp_path):
    path = _write(tmp_path, "pending_exercise.rs", PENDING)
    exercise = Exercise("pending_exercise", path, Mode.COMPILE, "")
    expected = Pending(
        (
            ContextLine("// fake_exercise", 1, False),
            ContextLine("", 2, False),
            ContextLine("// I AM NOT DONE", 3, True),
            ContextLine("", 4, False),
            ContextLine("fn main() {", 5, False),
        )
    )
    assert exercise.state() == expected
    assert not exercise.looks_done()


def test_finished_exercise(tmp_path):
    path = _write(tmp_path, "finished_exercise.rs", FINISHED)
    exercise = Exercise("finished_exercise", path, Mode.COMPILE, "")
    assert exercise.state() is None
    assert exercise.looks_done()


def test_marker_variants(tmp_path):
    indented = _write(tmp_path, "a.rs", "fn main() {}\n   ///I  AM NOT   DONE\n")
    state = Exercise("a", indented, Mode.COMPILE).state()
    assert state.context[-1] == ContextLine("   ///I  AM NOT   DONE", 2, True)
    done = _write(tmp_path, "b.rs", "// I AM DONE\nlet x = 1; // I AM NOT DONE\n")
    assert Exercise("b", done, Mode.COMPILE).looks_done()


def test_clean(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path(temp_file_path()).touch()
    monkeypatch.setattr(ex.subprocess, "run", FakeRun())
    exercise = Exercise("example", _write(tmp_path, "p.rs", PENDING), Mode.COMPILE, "")
    with exercise.compile():
        assert Path(temp_file_path()).exists()
    assert not Path(temp_file_path()).exists()


def test_clean_missing_file_is_fine(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    clean()
    assert not Path(temp_file_path()).exists()


def test_exercise_with_output(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    fake = FakeRun(stdout=b"running 1 test\nTHIS TEST TOO SHALL PASS\n")
    monkeypatch.setattr(ex.subprocess, "run", fake)
    path = _write(tmp_path, "testSuccess.rs", "#[test]\nfn passing() {}\n")
    exercise = Exercise("exercise_with_output", path, Mode.TEST, "")
    with exercise.compile() as compiled:
        out = compiled.run()
    assert "THIS TEST TOO SHALL PASS" in out.stdout
    assert fake.calls[0][:3] == ["rustc", "--test", str(path)]
    assert fake.calls[1] == [temp_file_path(), "--show-output"]


def test_compile_failure_raises(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path(temp_file_path()).touch()
    monkeypatch.setattr(ex.subprocess, "run", FakeRun(returncode=1, stderr=b"error[E0425]"))
    exercise = Exercise("compFailure", _write(tmp_path, "c.rs", "fn main() {\n"), Mode.COMPILE)
    with pytest.raises(ExerciseFailed) as info:
        exercise.compile()
    assert info.value.output.stderr == "error[E0425]"
    assert not Path(temp_file_path()).exists()


def test_run_failure_raises(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    exercise = Exercise("t", _write(tmp_path, "t.rs", ""), Mode.COMPILE)
    compiled = ex.CompiledExercise(exercise)
    monkeypatch.setattr(ex.subprocess, "run", FakeRun(returncode=101, stdout=b"panicked"))
    with pytest.raises(ExerciseFailed) as info:
        compiled.run()
    assert info.value.output.stdout == "panicked"


def test_build_script_run_is_empty(tmp_path, monkeypatch):
    fake = FakeRun(returncode=1)
    monkeypatch.setattr(ex.subprocess, "run", fake)
    exercise = Exercise("build", tmp_path / "build.rs", Mode.BUILD_SCRIPT)
    output = ex.CompiledExercise(exercise).run()
    assert output == ex.ExerciseOutput("", "")
    assert fake.calls == []


def test_clippy_writes_manifest(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "exercises" / "clippy").mkdir(parents=True)
    fake = FakeRun()
    monkeypatch.setattr(ex.subprocess, "run", fake)
    exercise = Exercise("clippy1", Path("exercises/clippy/clippy1.rs"), Mode.CLIPPY)
    compiled = exercise.compile()
    compile_calls = list(fake.calls)
    output = compiled.run()
    compiled.close()
    assert output == ex.ExerciseOutput("", "")
    manifest = (tmp_path / "exercises" / "clippy" / "Cargo.toml").read_text()
    assert 'name = "clippy1"' in manifest
    assert 'path = "clippy1.rs"' in manifest
    assert compile_calls[-1][:2] == ["cargo", "clippy"]
    assert compile_calls[-1][-4:] == ["-D", "warnings", "-D", "clippy::float_cmp"]


def test_str_is_path():
    exercise = Exercise("intro1", Path("exercises/intro/intro1.rs"), Mode.COMPILE)
    assert str(exercise) == str(Path("exercises/intro/intro1.rs"))


INFO = """
[[exercises]]
name = "intro1"
path = "exercises/intro/intro1.rs"
mode = "compile"
hint = "No hints this time ;)"

[[exercises]]
name = "build"
path = "exercises/tests/build.rs"
mode = "buildscript"
hint = ""
"""


def test_parse_exercises():
    exercises = parse_exercises(INFO)
    assert [e.name for e in exercises] == ["intro1", "build"]
    assert exercises[0].mode is Mode.COMPILE
    assert exercises[1].mode is Mode.BUILD_SCRIPT
    assert exercises[0].path == Path("exercises/intro/intro1.rs")
    assert exercises[0].hint == "No hints this time ;)"


def test_load_exercises(tmp_path):
    info = _write(tmp_path, "info.toml", INFO)
    assert [e.name for e in load_exercises(info)] == ["intro1", "build"]


@pytest.mark.parametrize(
    "text",
    [
        'x = 1',
        '[[exercises]]\nname = "a"\npath = "a.rs"\nmode = "bogus"\nhint = ""\n',
        '[[exercises]]\nname = "a"\nmode = "test"\nhint = ""\n',
        'not toml =',
    ],
)
def test_parse_exercises_rejects_invalid(text):
    with pytest.raises(ValueError):
        parse_exercises(text)