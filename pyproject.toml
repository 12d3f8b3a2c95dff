[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "leptos_build"
version = "0.1.0"
description = "Build, serve and live-reload support for Leptos web projects: tool management, file watching, static asset compression and reload signalling."
requires-python = ">=3.10"
keywords = [
    "leptos",
    "build",
    "live-reload",
    "wasm",
    "tailwind",
    "sass",
    "file-watching",
    "compression",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Framework :: AsyncIO",
]
dependencies = [
    "aiohttp",
    "brotli",
    "platformdirs",
    "semver",
    "watchdog",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["leptos_build"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
