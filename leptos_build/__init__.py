"""Building blocks for building, serving and live-reloading Leptos web projects."""

__version__ = "0.1.0"

__all__ = [
    "cargo",
    "compress",
    "errors",
    "exe",
    "fs",
    "logger",
    "paths",
    "process",
    "reload",
    "serve",
    "signals",
    "site",
    "tools",
    "util",
    "watched",
    "watcher",
]