"""The served site directory and change tracking of the files written to it."""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from . import fs
from .errors import dot
from .logger import TRACE
from .paths import test_string, without_last

log = logging.getLogger(__name__)

PathLike = str | os.PathLike


@dataclass(frozen=True)
class SiteFile:
    """A file in the site: path from the root and path within the site."""

    dest: Path
    site: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "dest", Path(self.dest))
        object.__setattr__(self, "site", Path(self.site))

    def __str__(self) -> str:
        return f"@{self.site}"

    def __repr__(self) -> str:
        return f"SiteFile(dest={test_string(self.dest)!r}, site={test_string(self.site)!r})"


@dataclass(frozen=True)
class SourcedSiteFile:
    """A site file copied from a source file."""

    source: Path
    dest: Path
    site: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", Path(self.source))
        object.__setattr__(self, "dest", Path(self.dest))
        object.__setattr__(self, "site", Path(self.site))

    def as_site_file(self) -> SiteFile:
        return SiteFile(self.dest, self.site)

    def __str__(self) -> str:
        return f"{self.source} -> @{self.site}"

    def __repr__(self) -> str:
        return (
            f"SourcedSiteFile(source={test_string(self.source)!r}, "
            f"dest={test_string(self.dest)!r}, site={test_string(self.site)!r})"
        )


async def file_hash(path: PathLike) -> int:
    """A 64-bit hash of the file's contents."""
    return _hash(await fs.read(path))


def _hash(data: bytes) -> int:
    return int.from_bytes(hashlib.blake2b(data, digest_size=8).digest(), "little")


class Site:
    """Addresses and directories of the site, with hashes of the files written."""

    def __init__(
        self,
        addr: tuple[str, int],
        reload_port: int,
        root_dir: PathLike,
        pkg_dir: PathLike,
    ) -> None:
        self.addr = addr
        self.reload = (addr[0], reload_port)
        self.root_dir = Path(root_dir)
        self.pkg_dir = Path(pkg_dir)
        self._file_reg: dict[str, int] = {}
        self._ext_file_reg: dict[str, int] = {}

    def __repr__(self) -> str:
        return (
            f"Site(addr={self.addr!r}, reload={self.reload!r}, root_dir={self.root_dir!r}, "
            f"pkg_dir={self.pkg_dir!r}, file_reg={self._file_reg!r}, "
            f"ext_file_reg={self._ext_file_reg!r})"
        )

    def root_relative_pkg_dir(self) -> Path:
        return self.root_dir / self.pkg_dir

    async def did_external_file_change(self, path: PathLike) -> bool:
        """True if a file outside the site changed since it was last checked."""
        with dot():
            new_hash = await file_hash(path)
        key = str(path)
        if self._ext_file_reg.get(key) == new_hash:
            return False
        self._ext_file_reg[key] = new_hash
        log.log(TRACE, "Site update hash for %s to %s", key, new_hash)
        return True

    async def updated(self, file: SourcedSiteFile) -> bool:
        """Copy the source to the site if it differs; True if it was copied."""
        await fs.create_dir_all(without_last(file.dest))
        new_hash = await file_hash(file.source)
        if await self._current_hash(file.site, file.dest) == new_hash:
            return False
        await fs.copy(file.source, file.dest)
        self._file_reg[str(file.site)] = new_hash
        return True

    async def did_file_change(self, file: SiteFile) -> bool:
        """After the file was written, True if it differs from the last record."""
        with dot():
            new_hash = await file_hash(file.dest)
        key = str(file.site)
        if self._file_reg.get(key) == new_hash:
            return False
        self._file_reg[key] = new_hash
        return True

    async def updated_with(self, file: SiteFile, data: bytes) -> bool:
        """Write ``data`` to the site file if it differs; True if it was written."""
        await fs.create_dir_all(without_last(file.dest))
        new_hash = _hash(bytes(data))
        if await self._current_hash(file.site, file.dest) == new_hash:
            return False
        await fs.write(file.dest, data)
        self._file_reg[str(file.site)] = new_hash
        return True

    async def _current_hash(self, site: Path, dest: Path) -> int | None:
        known = self._file_reg.get(str(site))
        if known is not None:
            return known
        if dest.exists():
            return await file_hash(dest)
        return None