"""Platform detection and small string and directory helpers."""

from __future__ import annotations

import os
import platform
import sysconfig
from pathlib import Path

from .errors import ContextError, context

_OS_NAMES = {"Windows": "windows", "Darwin": "macos", "Linux": "linux"}
_ARCH_NAMES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}


def os_arch() -> tuple[str, str]:
    """Return the (os, arch) pair used to pick tool downloads."""
    target_os = _OS_NAMES.get(platform.system())
    if target_os is None:
        raise ContextError("unsupported OS")
    target_arch = _ARCH_NAMES.get(platform.machine().lower())
    if target_arch is None:
        raise ContextError("unsupported target architecture")
    return target_os, target_arch


def is_linux_musl_env() -> bool:
    """True when running on Linux with the musl C library."""
    if platform.system() != "Linux":
        return False
    host = sysconfig.get_config_var("HOST_GNU_TYPE") or ""
    if "musl" in host:
        return True
    return platform.libc_ver()[0] == "musl"


def pad_left_to(text: str, length: int) -> str:
    """Pad ``text`` on the left with spaces up to ``length`` characters."""
    return text.rjust(length)


def to_created_dir(path: str | os.PathLike[str]) -> Path:
    """Return ``path`` as a Path, creating the directory if it is missing."""
    result = Path(path)
    if not result.exists():
        with context(f'Could not create dir "{path}"'):
            result.mkdir(parents=True)
    return result