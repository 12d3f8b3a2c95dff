"""External tools the build downloads: versions, download URLs and executable paths."""

from __future__ import annotations

import abc
import logging
from typing import ClassVar

import semver

from .errors import ContextError
from .util import is_linux_musl_env

log = logging.getLogger(__name__)

ENV_VAR_LEPTOS_CARGO_GENERATE_VERSION = "LEPTOS_CARGO_GENERATE_VERSION"
ENV_VAR_LEPTOS_TAILWIND_VERSION = "LEPTOS_TAILWIND_VERSION"
ENV_VAR_LEPTOS_SASS_VERSION = "LEPTOS_SASS_VERSION"
ENV_VAR_LEPTOS_WASM_OPT_VERSION = "LEPTOS_WASM_OPT_VERSION"

_U64_LIMIT = 2**64


def sanitize_version_prefix(version: str) -> str:
    """Drop everything before the first ASCII digit."""
    for position, char in enumerate(version):
        if char in "0123456789":
            return version[position:]
    return ""


def normalize_version(version: str) -> semver.Version | None:
    """Read a tool's version string as semver, filling in missing parts."""
    text = sanitize_version_prefix(version)
    try:
        return semver.Version.parse(text)
    except ValueError:
        pass
    if text.isascii() and text.isdigit() and int(text) < _U64_LIMIT:
        return semver.Version(int(text), 0, 0)
    try:
        return semver.Version.parse(f"{text}.0")
    except ValueError as err:
        log.error("Command failed to normalize version %s: %s", text, err)
        return None


def _release_url(owner: str, repo: str, version: str, asset: str) -> str:
    return f"https://github.com/{owner}/{repo}/releases/download/{version}/{asset}"


class Tool(abc.ABC):
    """A downloadable command-line tool and where to find it for each platform."""

    name: ClassVar[str]
    default_version: ClassVar[str]
    env_var_version_name: ClassVar[str]
    github_owner: ClassVar[str]
    github_repo: ClassVar[str]

    def __init__(self, musl: bool | None = None) -> None:
        self.musl = musl

    def _is_musl(self) -> bool:
        return is_linux_musl_env() if self.musl is None else self.musl

    def _release(self, version: str, asset: str) -> str:
        return _release_url(self.github_owner, self.github_repo, version, asset)

    @abc.abstractmethod
    def download_url(self, target_os: str, target_arch: str, version: str) -> str:
        """The download URL of ``version`` for the given platform."""

    @abc.abstractmethod
    def executable_name(self, target_os: str, target_arch: str, version: str | None) -> str:
        """The executable's path inside the extracted download."""

    def manual_install_instructions(self) -> str:
        return "Try manually installing the command"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(musl={self.musl!r})"


class TailwindTool(Tool):
    name = "tailwindcss"
    default_version = "v3.3.3"
    env_var_version_name = ENV_VAR_LEPTOS_TAILWIND_VERSION
    github_owner = "tailwindlabs"
    github_repo = "tailwindcss"

    _SUFFIXES: ClassVar[dict[tuple[str, str], str]] = {
        ("windows", "x86_64"): "windows-x64.exe",
        ("macos", "x86_64"): "macos-x64",
        ("macos", "aarch64"): "macos-arm64",
        ("linux", "x86_64"): "linux-x64",
        ("linux", "aarch64"): "linux-arm64",
    }

    def download_url(self, target_os: str, target_arch: str, version: str) -> str:
        suffix = self._SUFFIXES.get((target_os, target_arch))
        if suffix is None:
            raise ContextError(
                f"Command [{self.name}] failed to find a match for {target_os}-{target_arch} "
            )
        return self._release(version, f"{self.name}-{suffix}")

    def executable_name(self, target_os: str, target_arch: str, version: str | None) -> str:
        if target_os == "windows":
            suffix = "windows-x64.exe"
        else:
            suffix = self._SUFFIXES.get((target_os, target_arch), "linux-arm64")
        return f"{self.name}-{suffix}"

    def manual_install_instructions(self) -> str:
        return "Try manually installing tailwindcss: https://tailwindcss.com/docs/installation"


class WasmOptTool(Tool):
    name = "wasm-opt"
    default_version = "version_112"
    env_var_version_name = ENV_VAR_LEPTOS_WASM_OPT_VERSION
    github_owner = "WebAssembly"
    github_repo = "binaryen"

    def download_url(self, target_os: str, target_arch: str, version: str) -> str:
        if target_os == "linux":
            target = "x86_64-linux"
        elif target_os == "windows":
            target = "x86_64-windows"
        elif (target_os, target_arch) == ("macos", "aarch64"):
            target = "arm64-macos"
        elif (target_os, target_arch) == ("macos", "x86_64"):
            target = "x86_64-macos"
        else:
            raise ContextError(f"No wasm-opt tar binary found for {target_os} {target_arch}")
        return self._release(version, f"binaryen-{version}-{target}.tar.gz")

    def executable_name(self, target_os: str, target_arch: str, version: str | None) -> str:
        if version is None:
            raise ContextError("Version is required for WASM Opt, none provided")
        ext = ".exe" if target_os == "windows" else ""
        return f"binaryen-{version}/bin/{self.name}{ext}"

    def manual_install_instructions(self) -> str:
        return "Try manually installing binaryen: https://github.com/WebAssembly/binaryen"


class SassTool(Tool):
    name = "sass"
    default_version = "1.58.3"
    env_var_version_name = ENV_VAR_LEPTOS_SASS_VERSION
    github_owner = "dart-musl"
    github_repo = "dart-sass"

    _ARCHES: ClassVar[dict[str, str]] = {"x86_64": "x64", "aarch64": "arm64"}

    def download_url(self, target_os: str, target_arch: str, version: str) -> str:
        arch = self._ARCHES.get(target_arch)
        if self._is_musl():
            if arch is None:
                raise ContextError(f"No sass tar binary found for linux-musl {target_arch}")
            return self._release(version, f"dart-sass-{version}-linux-{arch}.tar.gz")
        if (target_os, target_arch) == ("windows", "x86_64"):
            return _release_url(
                "sass", self.github_repo, version, f"dart-sass-{version}-windows-x64.zip"
            )
        if target_os in ("macos", "linux") and arch is not None:
            return _release_url(
                "sass",
                self.github_repo,
                version,
                f"dart-sass-{version}-{target_os}-{arch}.tar.gz",
            )
        raise ContextError(f"No sass tar binary found for {target_os} {target_arch}")

    def executable_name(self, target_os: str, target_arch: str, version: str | None) -> str:
        return "dart-sass/sass.bat" if target_os == "windows" else "dart-sass/sass"

    def manual_install_instructions(self) -> str:
        return "Try manually installing sass: https://sass-lang.com/install"


class CargoGenerateTool(Tool):
    name = "cargo-generate"
    default_version = "v0.17.3"
    env_var_version_name = ENV_VAR_LEPTOS_CARGO_GENERATE_VERSION
    github_owner = "cargo-generate"
    github_repo = "cargo-generate"

    _MUSL_TARGETS: ClassVar[dict[tuple[str, str], str]] = {
        ("linux", "aarch64"): "aarch64-unknown-linux-musl",
        ("linux", "x86_64"): "x86_64-unknown-linux-musl",
    }
    _TARGETS: ClassVar[dict[tuple[str, str], str]] = {
        ("macos", "aarch64"): "aarch64-apple-darwin",
        ("linux", "aarch64"): "aarch64-unknown-linux-gnu",
        ("macos", "x86_64"): "x86_64-apple-darwin",
        ("windows", "x86_64"): "x86_64-pc-windows-msvc",
        ("linux", "x86_64"): "x86_64-unknown-linux-gnu",
    }

    def download_url(self, target_os: str, target_arch: str, version: str) -> str:
        if self._is_musl():
            target = self._MUSL_TARGETS.get((target_os, target_arch))
            if target is None:
                raise ContextError(
                    f"No cargo-generate tar binary found for linux-musl {target_arch}"
                )
        else:
            target = self._TARGETS.get((target_os, target_arch))
            if target is None:
                raise ContextError(
                    f"No cargo-generate tar binary found for {target_os} {target_arch}"
                )
        return self._release(version, f"cargo-generate-{version}-{target}.tar.gz")

    def executable_name(self, target_os: str, target_arch: str, version: str | None) -> str:
        return "cargo-generate.exe" if target_os == "windows" else "cargo-generate"

    def manual_install_instructions(self) -> str:
        return (
            "Try manually installing cargo-generate: "
            "https://github.com/cargo-generate/cargo-generate#installation"
        )