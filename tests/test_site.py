from pathlib import Path

import pytest

from leptos_build.errors import ContextError
from leptos_build.site import Site, SiteFile, SourcedSiteFile, file_hash


def make_site(tmp_path):
    return Site(("127.0.0.1", 3000), 3001, tmp_path / "site", "pkg")


def test_addresses_and_dirs(tmp_path):
    site = make_site(tmp_path)
    assert site.reload == ("127.0.0.1", 3001)
    assert site.root_relative_pkg_dir() == tmp_path / "site" / "pkg"


def test_file_display():
    sourced = SourcedSiteFile("style/main.css", "target/site/pkg/app.css", "pkg/app.css")
    assert str(sourced) == f"{Path('style/main.css')} -> @{Path('pkg/app.css')}"
    assert str(sourced.as_site_file()) == f"@{Path('pkg/app.css')}"
    assert sourced.as_site_file() == SiteFile("target/site/pkg/app.css", "pkg/app.css")


@pytest.mark.asyncio
async def test_file_hash_depends_on_content(tmp_path):
    a, b, c = tmp_path / "a", tmp_path / "b", tmp_path / "c"
    a.write_bytes(b"same")
    b.write_bytes(b"same")
    c.write_bytes(b"other")
    assert await file_hash(a) == await file_hash(b)
    assert await file_hash(a) != await file_hash(c)
    assert 0 <= await file_hash(a) < 2**64


@pytest.mark.asyncio
async def test_updated_copies_only_changes(tmp_path):
    site = make_site(tmp_path)
    source = tmp_path / "main.css"
    source.write_text("a {}")
    file = SourcedSiteFile(source, tmp_path / "site" / "pkg" / "main.css", "pkg/main.css")
    assert await site.updated(file) is True
    assert file.dest.read_text() == "a {}"
    assert await site.updated(file) is False
    source.write_text("b {}")
    assert await site.updated(file) is True
    assert file.dest.read_text() == "b {}"


@pytest.mark.asyncio
async def test_updated_skips_identical_existing_dest(tmp_path):
    site = make_site(tmp_path)
    source = tmp_path / "x.js"
    source.write_text("let x;")
    dest = tmp_path / "site" / "x.js"
    dest.parent.mkdir(parents=True)
    dest.write_text("let x;")
    assert await site.updated(SourcedSiteFile(source, dest, "x.js")) is False
    assert dest.read_text() == "let x;"


@pytest.mark.asyncio
async def test_updated_with_writes_data(tmp_path):
    site = make_site(tmp_path)
    file = SiteFile(tmp_path / "site" / "pkg" / "app.wasm", "pkg/app.wasm")
    assert await site.updated_with(file, b"\x00asm") is True
    assert file.dest.read_bytes() == b"\x00asm"
    assert await site.updated_with(file, b"\x00asm") is False
    assert await site.updated_with(file, b"\x00asm2") is True


@pytest.mark.asyncio
async def test_did_file_change(tmp_path):
    site = make_site(tmp_path)
    file = SiteFile(tmp_path / "out.js", "out.js")
    file.dest.write_text("1")
    assert await site.did_file_change(file) is True
    assert await site.did_file_change(file) is False
    file.dest.write_text("2")
    assert await site.did_file_change(file) is True


@pytest.mark.asyncio
async def test_did_external_file_change(tmp_path):
    site = make_site(tmp_path)
    path = tmp_path / "tailwind.config.js"
    path.write_text("x")
    assert await site.did_external_file_change(path) is True
    assert await site.did_external_file_change(path) is False
    path.write_text("y")
    assert await site.did_external_file_change(path) is True


@pytest.mark.asyncio
async def test_missing_file_raises(tmp_path):
    site = make_site(tmp_path)
    with pytest.raises(ContextError):
        await site.did_external_file_change(tmp_path / "missing")