"""Path helpers for rebasing, filtering and listing project paths."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from .errors import ContextError, context, dot

PathLike = str | os.PathLike


def relative_to(path: PathLike, root: PathLike) -> Path | None:
    """Return ``path`` relative to ``root`` if it is absolute and under it."""
    path, root = Path(path), Path(root)
    if path.is_absolute() and path.is_relative_to(root):
        return Path(*path.parts[len(root.parts):])
    return None


def unbase(path: PathLike, base: PathLike) -> Path:
    """Remove ``base`` from the start of ``path``; ``.`` if nothing is left."""
    path, base = Path(path), Path(base)
    try:
        rest = path.relative_to(base)
    except ValueError:
        raise ContextError(f'Could not remove base "{base}" from "{path}"') from None
    return rest if rest.parts else Path(".")


def rebase(path: PathLike, src_root: PathLike, dest_root: PathLike) -> Path:
    """Move ``path`` from under ``src_root`` to under ``dest_root``."""
    with context(f"Rebase {path} from {src_root} to {dest_root}"):
        with dot():
            unbased = unbase(path, src_root)
    return Path(dest_root) / unbased


def without_last(path: PathLike) -> Path:
    """Drop the last path component."""
    return Path(path).parent


def test_string(path: PathLike) -> str:
    """A platform independent string of ``path``, without an ``.exe`` suffix."""
    text = str(path).replace("\\", "/")
    return text[: -len(".exe")] if text.endswith(".exe") else text


def starts_with_any(path: PathLike, prefixes: Iterable[PathLike]) -> bool:
    """True if ``path`` lies under any of ``prefixes``."""
    path = Path(path)
    return any(path.is_relative_to(prefix) for prefix in prefixes)


def is_ext_any(path: PathLike, extensions: Iterable[str]) -> bool:
    """True if the extension of ``path`` is one of ``extensions``."""
    suffix = Path(path).suffix
    if not suffix:
        return False
    return suffix[1:] in set(extensions)


def resolve_home_dir(path: PathLike) -> Path:
    """Replace a leading ``~`` component with ``$HOME``."""
    path = Path(path)
    if path.parts and path.parts[0] == "~":
        with context("Could not resolve $HOME"):
            home = os.environ["HOME"]
        return Path(home) / path.relative_to("~")
    return path


def _strip_unc(text: str) -> str:
    if text.startswith("\\\\?\\") and not text.startswith("\\\\?\\UNC\\"):
        return text[4:]
    return text


def clean_windows_path(path: PathLike) -> Path:
    """Strip the ``\\\\?\\`` prefix from Windows paths; other paths are unchanged."""
    if os.name == "nt":
        return Path(_strip_unc(str(path)))
    return Path(path)


def ls_ascii(path: PathLike, indent: int = 0) -> str:
    """List a directory tree, files before sub-directories, both sorted."""
    path = Path(path)
    lines = [f"{'  ' * indent}{path.name}:"]
    files: list[Path] = []
    dirs: list[Path] = []
    for entry in path.iterdir():
        (dirs if entry.is_dir() else files).append(entry)
    lines.extend(f"{'  ' * (indent + 1)}{file.name}" for file in sorted(files))
    lines.extend(ls_ascii(directory, indent + 1) for directory in sorted(dirs))
    return "\n".join(lines)


def remove_nested(paths: Iterable[PathLike]) -> list[Path]:
    """Keep only the outermost paths, dropping those nested in another."""
    kept: list[Path] = []
    for path in map(Path, paths):
        for position, added in enumerate(kept):
            if added.is_relative_to(path):
                kept[position] = path
                break
            if path.is_relative_to(added):
                break
        else:
            kept.append(path)
    return kept


def append_str_to_filename(path: PathLike, suffix: str) -> Path:
    """Insert ``suffix`` between the file stem and its extension."""
    path = Path(path)
    if path.name in ("", ".."):
        raise ContextError(f'no file present in provided path "{path}"')
    return path.with_name(f"{path.stem}{suffix}{path.suffix}")


def determine_pdb_filename(path: PathLike) -> Path | None:
    """Return the ``.pdb`` file next to ``path`` if it exists."""
    path = Path(path)
    if path.name in ("", ".."):
        return None
    candidate = path.with_name(f"{path.stem}.pdb")
    return candidate if candidate.exists() else None