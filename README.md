# popcorn-cli

A terminal client for submitting solutions to Popcorn GPU kernel leaderboards.
It takes you through choosing a leaderboard, a GPU and a submission mode,
uploads your solution file and prints the results the server sends back as
indented JSON.

## Installation

```
pip install .
```

The selection screens use the standard library's `curses` module, so a
terminal where `curses` is available (Linux, macOS and other POSIX systems) is
needed.

## Configuration

Set the address of the Popcorn API before you run any command:

```
export POPCORN_API_URL=https://popcorn.example.com
```

If it is not set, `popcorn` prints a message and exits with status 1.

## Registering

Before your first submission, register this machine with Discord or GitHub:

```
popcorn register discord
popcorn register github
```

The CLI asks the API for a CLI ID and prints the provider's login URL. Open
that URL in your browser yourself and log in. The CLI ID is saved to
`~/.popcorn.yaml` right away; to use the same identity on another machine,
copy that file over. To start again with a new identity, use:

```
popcorn reregister discord
popcorn reregister github
```

## Submitting

```
popcorn submit path/to/solution.py
```

or simply:

```
popcorn path/to/solution.py
```

If you leave out the path, you are asked for it. Submitting needs a saved CLI
ID; without `~/.popcorn.yaml` or a `cli_id` in it, you are told to run
`popcorn register` first.

Choose each step with the arrow keys and Enter. Press `q` or Ctrl+C to quit;
quitting before a result arrives prints "Operation cancelled.".

The submission modes offered are:

- **Test**: runs the tests and reports which passed and which failed.
- **Benchmark**: runs the tests, then the benchmark, and reports detailed timings.
- **Leaderboard**: runs the public and then the private tests; if both pass, the
  submission is scored and added to the leaderboard.
- **Profile**: listed as a work in progress.

When the server answers with an event stream, status events are skipped, a
result event ends the run with its results, and an error event ends it with the
server's message. Other events are noted on standard error.

## Directives in the solution file

You can skip the selection screens by naming the leaderboard and GPU in comment
lines inside your solution:

```
#!POPCORN leaderboard my-leaderboard
#!POPCORN gpu A100
```

C-style comments work too (`//!POPCORN gpu A100`), and `gpus` is accepted in
place of `gpu`. Only one GPU per submission is supported for now: a file that
lists more than one is rejected.

## What it does not do

- It does not open a browser for you when registering; copy the printed URL
  into your browser.
- It does not confirm that registration finished; the CLI ID is saved as soon
  as it is received.