from pathlib import Path

import pytest

from leptos_build.watched import Watched, WatchedKind, convert_path


def test_display():
    assert str(Watched.create("a")) == 'create "a"'
    assert str(Watched.remove("a")) == 'remove "a"'
    assert str(Watched.write("a")) == 'write "a"'
    assert str(Watched.rename("a", "b")) == 'rename "a" -> "b"'
    assert str(Watched.rescan()) == "rescan"


def test_path_and_ext():
    watched = Watched.write(Path("src") / "lib.rs")
    assert watched.path == Path("src") / "lib.rs"
    assert watched.path_ext() == "rs"
    assert Watched.write("Makefile").path_ext() is None
    assert Watched.rescan().path is None
    assert Watched.rescan().path_ext() is None


def test_path_starts_with():
    assert Watched.create("src/app/main.rs").path_starts_with("src")
    assert not Watched.create("style/main.scss").path_starts_with("src")
    assert not Watched.rescan().path_starts_with("src")


def test_rename_matches_either_end():
    watched = Watched.rename("old/a.rs", "src/a.rs")
    assert watched.path_starts_with("old")
    assert watched.path_starts_with("src")
    assert not watched.path_starts_with("style")


def test_path_starts_with_any():
    watched = Watched.remove("assets/logo.png")
    assert watched.path_starts_with_any([Path("src"), Path("assets")])
    assert not watched.path_starts_with_any([Path("src")])
    assert not watched.path_starts_with_any([])


def test_invalid_construction():
    with pytest.raises(ValueError):
        Watched(WatchedKind.RENAME, Path("a"))
    with pytest.raises(ValueError):
        Watched(WatchedKind.WRITE)
    with pytest.raises(ValueError):
        Watched(WatchedKind.RESCAN, Path("a"))


def test_equality():
    assert Watched.write("a") == Watched(WatchedKind.WRITE, Path("a"))
    assert Watched.write("a") != Watched.create("a")


def test_convert_path_relative_to_working_dir(tmp_path):
    inside = tmp_path / "src" / "lib.rs"
    assert convert_path(inside, tmp_path) == Path("src") / "lib.rs"
    assert convert_path(tmp_path, tmp_path) == Path(".")


def test_convert_path_outside_working_dir(tmp_path):
    outside = Path("/elsewhere/file.rs")
    assert convert_path(outside, tmp_path) == outside