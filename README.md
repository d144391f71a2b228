# rustdrill

`rustdrill` walks you through a collection of small Rust exercises. Each
exercise is a `.rs` file that fails to compile, fails its tests or fails a
Clippy lint until you fix it. `rustdrill` compiles and runs the exercises for
you, shows the compiler output, tracks your progress and prints hints.

## Requirements

- Python 3.11 or later
- A Rust toolchain with `rustc` on your `PATH` (and `cargo` for Clippy and
  build-script exercises)
- `git`, for `rustdrill reset`

## Installation

```
pip install .
```

## The exercise list

Run `rustdrill` from the directory that holds `info.toml`; without it, or
without a working `rustc`, every command exits with status 1. Each entry of
`info.toml` gives an exercise's `name`, `path`, `mode` and `hint`:

```toml
[[exercises]]
name = "intro1"
path = "exercises/intro/intro1.rs"
mode = "compile"
hint = "No hints this time ;)"
```

The modes are:

- `compile` – build with `rustc` and run the program
- `test` – build with `rustc --test` and run the test harness
- `clippy` – write `exercises/clippy/Cargo.toml` and run `cargo clippy`
  with warnings denied
- `buildscript` – write `exercises/tests/Cargo.toml` and run `cargo test`

An exercise counts as unfinished while its file still has a line starting
with a `// I AM NOT DONE` comment. Once it builds and passes, remove that
comment to move on.

## Watch mode

```
rustdrill watch
rustdrill watch --success-hints
```

Watch mode verifies the exercises in order and stops at the first one that
does not pass. Whenever a `.rs` file under `./exercises` is created or
changed, the changed exercise is checked first, then every other unfinished
one. With `--success-hints`, an exercise's hint is shown once it builds but
still carries its marker comment.

While watching you can type:

- `hint` – print the hint of the exercise that last failed
- `clear` – clear the screen
- `quit` – leave watch mode
- `!<cmd>` – run a command, such as `!rustc --explain E0381`
- `help` – show this list

## Commands

```
rustdrill                     # print the introduction
rustdrill verify              # check every exercise in order
rustdrill run <name>          # compile and run (or test) a single exercise
rustdrill run next            # run the first unfinished exercise
rustdrill hint <name>         # print the hint for an exercise
rustdrill reset <name>        # run "git stash -- <path>" for an exercise
rustdrill list                # list exercises with their status and progress
rustdrill lsp                 # write rust-project.json for rust-analyzer
rustdrill cicvverify          # grade every exercise and write a JSON report
rustdrill --version
```

`list` accepts `--paths`/`-p`, `--names`/`-n`, `--filter`/`-f <patterns>`
(comma-separated, matched against names and paths), `--solved`/`-s` and
`--unsolved`/`-u`.

`--nocapture`, given before the command, prints the output of test
exercises.

`verify` and `run` exit with status 1 when an exercise fails; so do `run`,
`hint` and `reset` when no exercise has the given name.

`lsp` takes the standard library sources from `RUST_SRC_PATH`, or from
`rustc --print sysroot`, and adds a crate for every `.rs` file under
`./exercises` to `./rust-project.json`.

`cicvverify` runs every exercise concurrently, prints progress as each one
finishes, and writes the per-exercise results and totals as JSON to
`.github/result/check_result.json`. That directory must already exist.

## Output

Set `NO_EMOJI` in the environment to print plain-text markers instead of
emoji. Colours are used only when standard output is a terminal (and `TERM`
is not `dumb`); `CLICOLOR=0` turns them off and a non-zero
`CLICOLOR_FORCE` turns them on.

## Using it from Python

The pieces behind the commands can be used directly:

```python
from rustdrill.exercise import load_exercises
from rustdrill.verify import VerificationFailed, verify

exercises = load_exercises("info.toml")
try:
    verify(exercises, (0, len(exercises)), verbose=False, success_hints=False)
except VerificationFailed as exc:
    print("stuck on", exc.exercise.name)
```

`Exercise.state()` returns `None` for a finished exercise, or a `Pending`
holding the lines around the marker comment.

## What it does not include

`rustdrill` ships no exercises of its own: you provide `info.toml` and the
exercise files it points to.