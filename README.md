# leptos_build

Building blocks for building, serving and live-reloading Leptos web projects.

The package is a library; it brings together the pieces a Leptos build
workflow needs:

- **Tool management** (`leptos_build.tools`, `leptos_build.exe`): knows where to
  download `tailwindcss`, `wasm-opt`, `sass` and `cargo-generate` for each
  operating system and architecture, caches the downloaded binaries in the
  user cache directory, prefers a binary already on `PATH`, and checks at most
  once a day whether a newer release is available. A version can be pinned
  with the environment variables `LEPTOS_TAILWIND_VERSION`,
  `LEPTOS_WASM_OPT_VERSION`, `LEPTOS_SASS_VERSION` and
  `LEPTOS_CARGO_GENERATE_VERSION`. `Exe.TAILWIND.get()` (and the other `Exe`
  members) returns the path of a usable executable.
- **Static asset compression** (`leptos_build.compress`): writes a `.gz` and a
  `.br` copy of every file under a site directory, skipping files that are
  already compressed.
- **Site files** (`leptos_build.site`): `Site` copies or writes output files
  only when their content has changed, tracking content hashes.
- **File watching** (`leptos_build.watched`, `leptos_build.watcher`): turns file
  system events into `Watched` changes relative to the working directory,
  debounced and handed to a callback by `FileWatcher` or `watch()`.
- **Signals** (`leptos_build.signals`): `Broadcast` channels for interrupts,
  shutdown, server restarts and browser reloads (`INTERRUPT`,
  `SERVER_RESTART`, `RELOAD`), plus the `Outcome`, `Product` and `ProductSet`
  types that describe what a build step produced.
- **Serving and reloading** (`leptos_build.serve`, `leptos_build.reload`):
  `spawn()` runs the server binary and restarts it on demand; `ReloadServer`
  serves a `/live_reload` websocket and pushes `BrowserMessage` JSON
  (`{"css": ..., "view": ..., "all": ...}`) to connected browsers.
- **Helpers**: path utilities (`leptos_build.paths`), asynchronous file system
  wrappers whose errors name the paths involved (`leptos_build.fs`), errors
  with context (`leptos_build.errors`), `cargo metadata` parsing and queries
  (`leptos_build.cargo`), interruptible subprocess waiting
  (`leptos_build.process`), platform helpers (`leptos_build.util`) and
  coloured log output (`leptos_build.logger`).

## Examples

Normalising tool versions:

```python
from leptos_build.tools import normalize_version, sanitize_version_prefix

sanitize_version_prefix("v1.2.3")      # "1.2.3"
normalize_version("version_112")       # Version(112, 0, 0)
normalize_version("0.2")               # Version(0, 2, 0)
normalize_version("1a-test")           # None
```

Working with paths:

```python
from pathlib import Path
from leptos_build.paths import append_str_to_filename, remove_nested

append_str_to_filename(Path("foo.bar"), "_bazz")   # Path("foo_bazz.bar")
remove_nested([Path("src"), Path("src/app"), Path("style")])
# [Path("src"), Path("style")]
```

Precompressing a site directory:

```python
from leptos_build.compress import compress_dir_all

compress_dir_all("target/site")
```

Collecting build products:

```python
from leptos_build.signals import Outcome, Product, ProductKind, ProductSet

outcomes = [Outcome.success(Product.style("main.css")), Outcome.failed()]
products = ProductSet.from_outcomes(outcomes)
products.only_style()   # True
```

Errors raised inside a `context(...)` block are re-raised as `ContextError`
with the message and the caller's location:

```python
from leptos_build.errors import context

with context("Could not read config"):
    open("missing.toml")
```

## Logging

`leptos_build.logger.setup(verbose, logs)` installs the formatter and filter
on the root logger, once. A verbosity of 0 logs at info level, 1 at debug and
2 or more at trace. Output from other loggers is hidden except for errors,
unless the matching `LogTarget` (`SERVER` for `hyper`/`axum`, `WASM` for
`wasm`/`walrus`) is passed in `logs`.

## What this package does not do

There is no command-line program. The package does not read a project's
configuration, does not compile the Rust sources or the front-end bundle, and
does not drive a full build or watch loop; it provides the pieces such a
program is made from, and the caller wires them together.

## Tests

```
pip install -e .[test]
pytest
```