"""Locating, downloading and caching the external tools a build needs."""

from __future__ import annotations

import asyncio
import enum
import io
import logging
import os
import shutil
import tarfile
import time
import zipfile
from dataclasses import dataclass
from pathlib import Path

import aiohttp
import platformdirs

from .errors import ContextError, context, dot
from .logger import GRAY, TRACE, paint
from .tools import (
    CargoGenerateTool,
    SassTool,
    TailwindTool,
    Tool,
    WasmOptTool,
    normalize_version,
)
from .util import os_arch

log = logging.getLogger(__name__)

_CACHE_APP = "cargo-leptos"
_USER_AGENT = "cargo-leptos"
_ONE_DAY_MS = 24 * 60 * 60 * 1000
_cache_dir_logged = False


@dataclass(frozen=True)
class ExeMeta:
    """A resolved tool: its version, where to download it and its executable path."""

    name: str
    version: str
    url: str
    exe: str
    manual: str

    @property
    def full_name(self) -> str:
        return f"{self.name}-{self.version}"

    def from_global_path(self) -> Path | None:
        """The tool found on PATH, if any."""
        found = shutil.which(self.name)
        return Path(found) if found else None

    async def cached(self) -> Path:
        """The executable from the user cache, downloading it if needed."""
        return await self._with_cache_dir(get_cache_dir() / self.full_name)

    async def with_cache_dir(self, cache_dir: str | os.PathLike) -> Path:
        """The executable from ``cache_dir``, downloading it if needed."""
        return await self._with_cache_dir(Path(cache_dir))

    async def _with_cache_dir(self, cache_dir: Path) -> Path:
        return await ExeCache(self, cache_dir / self.full_name).get()


@dataclass
class ExeCache:
    """One tool's directory in the download cache."""

    meta: ExeMeta
    exe_dir: Path

    def exe_in_cache(self) -> Path:
        """The cached executable; raises if it is not there."""
        exe_path = self.exe_dir / self.meta.exe
        if not exe_path.exists():
            raise ContextError(f'The path "{exe_path}" doesn\'t exist')
        return exe_path

    async def fetch_archive(self) -> bytes:
        """Download the tool's archive or binary."""
        log.debug("Install downloading %s %s", self.meta.name, paint(GRAY, self.meta.url))
        async with aiohttp.ClientSession() as session:
            async with session.get(self.meta.url) as response:
                if not 200 <= response.status < 300:
                    raise ContextError(f"Could not download from {self.meta.url}")
                return await response.read()

    def extract_downloaded(self, data: bytes) -> None:
        """Unpack downloaded data into the cache directory by its URL's suffix."""
        if self.meta.url.endswith(".zip"):
            extract_zip(data, self.exe_dir)
        elif self.meta.url.endswith(".tar.gz"):
            extract_tar(data, self.exe_dir)
        else:
            with context(f"Could not write binary {self.meta.full_name}"):
                self.write_binary(data)
        log.debug(
            "Install decompressing %s %s", self.meta.name, paint(GRAY, str(self.exe_dir))
        )

    def write_binary(self, data: bytes) -> None:
        """Store a bare executable, readable and executable for owner and group."""
        self.exe_dir.mkdir(parents=True, exist_ok=True)
        path = self.exe_dir / self.meta.exe
        with context(f'Error writing binary file: "{path}"'):
            path.write_bytes(data)
        os.chmod(path, 0o550)

    async def download(self) -> Path:
        """Download and unpack the tool, returning the executable's path."""
        log.info("Command installing %s ...", self.meta.full_name)
        with context(f"Could not download {self.meta.full_name}"):
            data = await self.fetch_archive()
        with context(f"Could not extract {self.meta.full_name}"):
            await asyncio.to_thread(self.extract_downloaded, data)
        with context(
            "Binary downloaded and extracted but could still not be found at "
            f'"{self.exe_dir}"'
        ):
            binary_path = self.exe_in_cache()
        log.info("Command %s installed.", self.meta.full_name)
        return binary_path

    async def get(self) -> Path:
        """The cached executable, downloaded first when missing."""
        try:
            return self.exe_in_cache()
        except ContextError:
            return await self.download()


def extract_tar(data: bytes, dest: str | os.PathLike) -> None:
    """Unpack a gzipped tar archive into ``dest``."""
    with dot():
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as archive:
            if hasattr(tarfile, "tar_filter"):
                archive.extractall(dest, filter="tar")
            else:
                archive.extractall(dest)


def extract_zip(data: bytes, dest: str | os.PathLike) -> None:
    """Unpack a zip archive into ``dest``, keeping unix permissions."""
    with dot():
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            for info in archive.infolist():
                target = archive.extract(info, dest)
                mode = (info.external_attr >> 16) & 0o7777
                if mode and not info.is_dir() and os.name == "posix":
                    os.chmod(target, mode)


def get_cache_dir() -> Path:
    """The application's cache directory, created when missing."""
    global _cache_dir_logged
    directory = Path(
        platformdirs.user_cache_dir(_CACHE_APP, appauthor=False, opinion=False)
    )
    if not directory.exists():
        with context(f'Could not create dir "{directory}"'):
            directory.mkdir(parents=True)
    if not _cache_dir_logged:
        _cache_dir_logged = True
        log.debug("Command cache dir: %s", directory)
    return directory


def _now_ms() -> int:
    return int(time.time() * 1000)


def _parse_timestamp(text: str) -> int:
    digits = text[1:] if text.startswith("+") else text
    if digits.isascii() and digits.isdigit():
        return int(digits)
    return 0


async def _write_marker(marker: Path, now: int) -> bool:
    try:
        await asyncio.to_thread(marker.write_text, str(now))
    except OSError:
        return False
    return True


async def should_check_for_new_version(
    tool: Tool, cache_dir: str | os.PathLike | None = None
) -> bool:
    """True at most once a day per tool, tracked by a marker file; False on errors."""
    if cache_dir is None:
        try:
            cache_dir = get_cache_dir()
        except ContextError as err:
            log.warning("Command %s failed to get cache dir: %s", tool.name, err)
            return False
    marker = Path(cache_dir) / f".{tool.name}_last_checked"
    if marker.is_dir():
        log.warning(
            "Command [%s] encountered a conflicting dir in the cache, please delete %s",
            tool.name,
            marker,
        )
        return False
    now = _now_ms()
    if marker.exists():
        try:
            contents = await asyncio.to_thread(marker.read_text)
        except (OSError, UnicodeDecodeError):
            return False
        if now - _parse_timestamp(contents) > _ONE_DAY_MS:
            return await _write_marker(marker, now)
        return False
    return await _write_marker(marker, now)


async def check_for_latest_version(tool: Tool) -> str | None:
    """The tag of the tool's latest release, or None when it cannot be fetched."""
    log.debug("Command [%s] checking for the latest available version", tool.name)
    url = (
        f"https://api.github.com/repos/{tool.github_owner}/{tool.github_repo}"
        "/releases/latest"
    )
    try:
        async with aiohttp.ClientSession(headers={"User-Agent": _USER_AGENT}) as session:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    log.error(
                        "Command [%s] GitHub API request failed: %s",
                        tool.name,
                        response.status,
                    )
                    return None
                try:
                    payload = await response.json(content_type=None)
                    tag = payload["tag_name"]
                    if not isinstance(tag, str):
                        raise TypeError("tag_name is not a string")
                except (ValueError, KeyError, TypeError) as err:
                    log.debug(
                        "Command [%s] failed to parse the response JSON from the "
                        "GitHub API: %s",
                        tool.name,
                        err,
                    )
                    return None
                return tag
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError):
        log.debug("Command [%s] failed to check for the latest version", tool.name)
        return None


async def resolve_version(tool: Tool) -> str:
    """The version to use: a pinned one from the environment or the default.

    Reports when a newer release is available.
    """
    pinned = os.environ.get(tool.env_var_version_name)
    log.log(
        TRACE,
        "Command [%s] is_force_pin_version: %s - %r",
        tool.name,
        pinned is not None,
        pinned,
    )
    if pinned is None and not await should_check_for_new_version(tool):
        log.log(TRACE, "Command [%s] NOT checking for the latest available version", tool.name)
        return tool.default_version

    version = pinned if pinned is not None else tool.default_version
    latest = await check_for_latest_version(tool)
    if latest is None:
        log.warning("Command [%s] failed to check for the latest version", tool.name)
        return version

    norm_latest = normalize_version(latest)
    norm_version = normalize_version(version)
    if norm_latest is not None and norm_version is not None:
        if norm_version >= norm_latest:
            log.debug(
                "Command [%s] requested version %s is already same or newer than "
                "available version %s",
                tool.name,
                version,
                latest,
            )
        else:
            log.info(
                "Command [%s] requested version %s, but a newer version %s is available, "
                "you can try it out by setting the %s=%s env var and re-running the command",
                tool.name,
                version,
                latest,
                tool.env_var_version_name,
                latest,
            )
    return version


async def exe_meta(tool: Tool, target_os: str, target_arch: str) -> ExeMeta:
    """Resolve the tool's version and its download details for a platform."""
    version = await resolve_version(tool)
    return ExeMeta(
        name=tool.name,
        version=version,
        url=tool.download_url(target_os, target_arch, version),
        exe=tool.executable_name(target_os, target_arch, version),
        manual=tool.manual_install_instructions(),
    )


class Exe(enum.Enum):
    """The external tools the build can use."""

    CARGO_GENERATE = "cargo-generate"
    SASS = "sass"
    WASM_OPT = "wasm-opt"
    TAILWIND = "tailwindcss"

    @property
    def tool(self) -> Tool:
        return _TOOL_CLASSES[self]()

    async def meta(self) -> ExeMeta:
        """The tool's metadata for the current platform."""
        target_os, target_arch = os_arch()
        with dot():
            return await exe_meta(self.tool, target_os, target_arch)

    async def get(self) -> Path:
        """The tool's executable: from PATH, else from the cache."""
        meta = await self.meta()
        path = meta.from_global_path()
        if path is None:
            with context(meta.manual):
                path = await meta.cached()
        log.debug("Command using %s %s %s", meta.name, meta.version, paint(GRAY, str(path)))
        return path


_TOOL_CLASSES: dict[Exe, type[Tool]] = {
    Exe.CARGO_GENERATE: CargoGenerateTool,
    Exe.SASS: SassTool,
    Exe.WASM_OPT: WasmOptTool,
    Exe.TAILWIND: TailwindTool,
}