"""The parts of `cargo metadata` output the build needs, and queries over them."""

from __future__ import annotations

import json
import os
import subprocess
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ContextError
from .paths import clean_windows_path, unbase


@dataclass(frozen=True)
class Target:
    """A build target of a package."""

    name: str
    kind: tuple[str, ...] = ()
    crate_types: tuple[str, ...] = ()
    src_path: Path | None = None

    def is_bin(self) -> bool:
        return "bin" in self.kind


@dataclass(frozen=True)
class Dependency:
    """A declared dependency; ``path`` is set for local path dependencies."""

    name: str
    path: Path | None = None


@dataclass(frozen=True)
class Package:
    """A package of the workspace or one of its dependencies."""

    id: str
    name: str
    manifest_path: Path
    targets: tuple[Target, ...] = ()
    dependencies: tuple[Dependency, ...] = ()

    def has_bin_target(self) -> bool:
        return any(target.is_bin() for target in self.targets)

    def bin_targets(self) -> Iterator[Target]:
        return (target for target in self.targets if target.is_bin())

    def cdylib_target(self) -> Target | None:
        return next((t for t in self.targets if "cdylib" in t.crate_types), None)

    def target_list(self) -> str:
        """The targets as ``name (crate types)``, comma separated."""
        return ", ".join(f"{t.name} ({', '.join(t.crate_types)})" for t in self.targets)

    def path_dependencies(self) -> list[Path]:
        return [dep.path for dep in self.dependencies if dep.path is not None]


@dataclass(frozen=True)
class Node:
    """A package in the resolved dependency graph with the ids it depends on."""

    id: str
    deps: tuple[str, ...] = ()


@dataclass(frozen=True)
class Resolve:
    """The resolved dependency graph."""

    nodes: tuple[Node, ...] = ()

    def deps_for(self, package_id: str, found: set[str]) -> None:
        """Add ``package_id`` and everything it depends on, transitively, to ``found``."""
        node = next((n for n in self.nodes if n.id == package_id), None)
        if node is None or node.id in found:
            return
        found.add(node.id)
        for dep in node.deps:
            self.deps_for(dep, found)


@dataclass(frozen=True)
class Metadata:
    """Workspace layout, packages and the resolved graph."""

    workspace_root: Path
    target_directory: Path
    packages: tuple[Package, ...] = ()
    resolve: Resolve | None = field(default=None)

    def rel_target_dir(self) -> Path:
        """The target directory relative to the workspace root."""
        return Path(os.path.relpath(self.target_directory, self.workspace_root))

    def package_for(self, package_id: str) -> Package | None:
        return next((p for p in self.packages if p.id == package_id), None)

    def path_dependencies(self, package_id: str) -> list[Path]:
        """Path dependencies of the package and of everything it depends on."""
        if self.resolve is None:
            return []
        found: set[str] = set()
        self.resolve.deps_for(package_id, found)
        return [
            path
            for package in self.packages
            if package.id in found
            for path in package.path_dependencies()
        ]

    def src_path_dependencies(self, package_id: str) -> list[Path]:
        """The ``src`` directories of the path dependencies, relative to the root."""
        result = []
        for path in self.path_dependencies(package_id):
            try:
                base = unbase(path, self.workspace_root)
            except ContextError:
                base = path
            result.append(base / "src")
        return result


def _path(value: str) -> Path:
    return clean_windows_path(Path(value))


def _target(data: Mapping[str, Any]) -> Target:
    src = data.get("src_path")
    return Target(
        name=data["name"],
        kind=tuple(data.get("kind", ())),
        crate_types=tuple(data.get("crate_types", ())),
        src_path=Path(src) if src else None,
    )


def _dependency(data: Mapping[str, Any]) -> Dependency:
    path = data.get("path")
    return Dependency(name=data["name"], path=_path(path) if path else None)


def _package(data: Mapping[str, Any]) -> Package:
    return Package(
        id=data["id"],
        name=data["name"],
        manifest_path=_path(data["manifest_path"]),
        targets=tuple(_target(t) for t in data.get("targets", ())),
        dependencies=tuple(_dependency(d) for d in data.get("dependencies", ())),
    )


def _node(data: Mapping[str, Any]) -> Node:
    if "deps" in data:
        deps = tuple(dep["pkg"] for dep in data["deps"])
    else:
        deps = tuple(data.get("dependencies", ()))
    return Node(id=data["id"], deps=deps)


def parse_metadata(data: str | bytes | Mapping[str, Any]) -> Metadata:
    """Build Metadata from `cargo metadata` JSON text or its decoded form."""
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as err:
            raise ContextError(f"Could not parse cargo metadata: {err}") from err
    try:
        resolve_data = data.get("resolve")
        resolve = (
            Resolve(tuple(_node(n) for n in resolve_data.get("nodes", ())))
            if resolve_data
            else None
        )
        return Metadata(
            workspace_root=_path(data["workspace_root"]),
            target_directory=_path(data["target_directory"]),
            packages=tuple(_package(p) for p in data.get("packages", ())),
            resolve=resolve,
        )
    except (KeyError, TypeError, AttributeError) as err:
        raise ContextError(f"Invalid cargo metadata: {err!r}") from err


def load_metadata(manifest_path: str | os.PathLike) -> Metadata:
    """Run `cargo metadata` for ``manifest_path`` and parse its output."""
    args = [
        "cargo",
        "metadata",
        "--format-version",
        "1",
        "--manifest-path",
        os.fspath(manifest_path),
    ]
    try:
        completed = subprocess.run(args, capture_output=True, text=True, check=False)
    except OSError as err:
        raise ContextError(f"Could not run cargo metadata: {err}") from err
    if completed.returncode != 0:
        raise ContextError(
            f"cargo metadata failed with code {completed.returncode}: "
            f"{completed.stderr.strip()}"
        )
    return parse_metadata(completed.stdout)