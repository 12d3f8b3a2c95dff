import pytest
import semver

from leptos_build.errors import ContextError
from leptos_build.tools import (
    CargoGenerateTool,
    SassTool,
    TailwindTool,
    WasmOptTool,
    normalize_version,
    sanitize_version_prefix,
)


def _triple(version):
    return (version.major, version.minor, version.patch)


def test_sanitize_version_prefix():
    version = sanitize_version_prefix("v1.2.3")
    assert version == "1.2.3"
    assert _triple(semver.Version.parse(version)) == (1, 2, 3)
    version = sanitize_version_prefix("version_1.2.3")
    assert version == "1.2.3"
    assert _triple(semver.Version.parse(version)) == (1, 2, 3)


def test_normalize_version():
    assert _triple(normalize_version("version_112")) == (112, 0, 0)
    assert _triple(normalize_version("v3.3.3")) == (3, 3, 3)
    assert _triple(normalize_version("10.0.0")) == (10, 0, 0)


def test_incomplete_version_strings():
    assert _triple(normalize_version("5")) == (5, 0, 0)
    assert _triple(normalize_version("0.2")) == (0, 2, 0)


def test_invalid_versions():
    assert normalize_version("1a-test") is None


def test_normalized_versions_order():
    assert normalize_version("version_112") > normalize_version("version_111")
    assert normalize_version("v3.3.3") == normalize_version("3.3.3")


def test_tailwind_download_url():
    url = TailwindTool().download_url("linux", "x86_64", "v3.3.3")
    assert url == (
        "https://github.com/tailwindlabs/tailwindcss/releases/download/"
        "v3.3.3/tailwindcss-linux-x64"
    )
    assert TailwindTool().download_url("macos", "aarch64", "v3.3.3").endswith(
        "tailwindcss-macos-arm64"
    )


def test_tailwind_unknown_platform():
    with pytest.raises(ContextError, match="failed to find a match for windows-aarch64"):
        TailwindTool().download_url("windows", "aarch64", "v3.3.3")


def test_tailwind_executable_name_matches_download():
    tool = TailwindTool()
    for target_os, arch in [("linux", "x86_64"), ("macos", "aarch64"), ("windows", "x86_64")]:
        url = tool.download_url(target_os, arch, "v1")
        assert url.endswith("/" + tool.executable_name(target_os, arch, None))


def test_wasm_opt_download_url():
    url = WasmOptTool().download_url("linux", "aarch64", "version_112")
    assert url == (
        "https://github.com/WebAssembly/binaryen/releases/download/"
        "version_112/binaryen-version_112-x86_64-linux.tar.gz"
    )
    assert WasmOptTool().download_url("macos", "aarch64", "v").endswith("arm64-macos.tar.gz")


def test_wasm_opt_executable_name():
    tool = WasmOptTool()
    assert tool.executable_name("linux", "x86_64", "version_112") == (
        "binaryen-version_112/bin/wasm-opt"
    )
    assert tool.executable_name("windows", "x86_64", "version_112").endswith("wasm-opt.exe")
    with pytest.raises(ContextError, match="Version is required"):
        tool.executable_name("linux", "x86_64", None)


def test_sass_download_url_glibc():
    tool = SassTool(musl=False)
    assert tool.download_url("linux", "x86_64", "1.58.3") == (
        "https://github.com/sass/dart-sass/releases/download/"
        "1.58.3/dart-sass-1.58.3-linux-x64.tar.gz"
    )
    assert tool.download_url("windows", "x86_64", "1.58.3").endswith("windows-x64.zip")
    with pytest.raises(ContextError, match="No sass tar binary found"):
        tool.download_url("windows", "aarch64", "1.58.3")


def test_sass_download_url_musl():
    tool = SassTool(musl=True)
    url = tool.download_url("linux", "aarch64", "1.58.3")
    assert url.startswith("https://github.com/dart-musl/dart-sass/")
    assert url.endswith("dart-sass-1.58.3-linux-arm64.tar.gz")
    with pytest.raises(ContextError, match="linux-musl"):
        tool.download_url("linux", "riscv64", "1.58.3")


def test_sass_executable_name():
    assert SassTool().executable_name("windows", "x86_64", None) == "dart-sass/sass.bat"
    assert SassTool().executable_name("linux", "x86_64", None) == "dart-sass/sass"


def test_cargo_generate_download_url():
    tool = CargoGenerateTool(musl=False)
    assert tool.download_url("linux", "x86_64", "v0.17.3") == (
        "https://github.com/cargo-generate/cargo-generate/releases/download/"
        "v0.17.3/cargo-generate-v0.17.3-x86_64-unknown-linux-gnu.tar.gz"
    )
    musl = CargoGenerateTool(musl=True)
    assert musl.download_url("linux", "aarch64", "v0.17.3").endswith(
        "aarch64-unknown-linux-musl.tar.gz"
    )
    with pytest.raises(ContextError):
        musl.download_url("macos", "aarch64", "v0.17.3")


def test_cargo_generate_executable_name():
    assert CargoGenerateTool().executable_name("windows", "x86_64", None) == "cargo-generate.exe"
    assert CargoGenerateTool().executable_name("macos", "x86_64", None) == "cargo-generate"


def test_default_versions_normalize():
    for tool in [TailwindTool(), WasmOptTool(), SassTool(), CargoGenerateTool()]:
        assert normalize_version(tool.default_version) is not None
        assert tool.env_var_version_name.startswith("LEPTOS_")
        assert tool.manual_install_instructions().startswith("Try manually installing")