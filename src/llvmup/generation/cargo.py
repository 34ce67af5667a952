from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import structlog
import toml

from llvmup.analysis.node import DependencyNode, classify_reference
from llvmup.directories import Directories
from llvmup.errors import (
    CargoManifestDoesNotExistError,
    CargoManifestFeatureSectionNotFoundError,
    LibraryParentDirNotInLinkDirectoriesError,
    OutputWriteError,
    TargetFileNameNotFoundError,
)
from llvmup.generation.directives import (
    Directive,
    FeatureGated,
    Item,
    LinkGroup,
    directive_lines,
    link_lib,
    link_search,
    render_build_script,
)
from llvmup.toolchain.component import ToolchainComponent
from llvmup.toolchain.context import ToolchainContext
from llvmup.toolchain.platform import ToolchainSys

log = structlog.get_logger("llvmup.generation")

FEATURES_MARKER = "#@llvmup:features\n"
BUILD_SCRIPT_NAME = "build_llvmup.rs"
CARGO_MANIFEST_NAME = "Cargo.toml"


def link_instruction(node: DependencyNode, system: ToolchainSys | None) -> Directive | None:
    """The ``rustc-link-lib`` directive for one node, or None when it is not linked on this host."""
    linkage = node.kind.linkage
    if linkage is None:
        return None

    # system libraries such as `m` or `pthread` carry no location
    if node.location is None:
        return link_lib(linkage, node.name)

    location = node.location
    parent, _, file_name = location.rpartition("/")
    if not file_name:
        raise TargetFileNameNotFoundError(node.name, location)
    expected = node.expected_file_name(system)
    if expected is None:
        return None

    if parent:
        link_dirs = {PurePosixPath(directory) for directory in node.interface_link_directories}
        if PurePosixPath(parent) not in link_dirs:
            raise LibraryParentDirNotInLinkDirectoriesError(node.name, parent, list(node.interface_link_directories))
        verbatim = PurePosixPath(parent) / expected != PurePosixPath(location)
    else:
        verbatim = location not in {expected, f"lib/{expected}"}

    return link_lib(linkage, file_name if verbatim else node.name, verbatim)


@dataclass(slots=True)
class CargoConfig:
    context: ToolchainContext
    directories: Directories
    build_link_dirs: set[str] = field(default_factory=set)
    build_link_items: list[Item] = field(default_factory=list)
    cargo_features: dict[str, list[str]] = field(default_factory=dict)

    def link_search_directives(self) -> list[Directive]:
        root = self.directories.toolchain_root_path(self.context)
        return [link_search(str(root / directory)) for directory in sorted(self.build_link_dirs)]

    def build_script(self) -> str:
        return render_build_script(self.link_search_directives(), self.build_link_items)

    def enabled_closure(self, enabled: Iterable[str]) -> set[str]:
        """Features switched on by ``enabled``, following the implications of the feature table."""
        active: set[str] = set()
        pending = list(enabled)
        while pending:
            feature = pending.pop()
            if feature in active:
                continue
            active.add(feature)
            # `crate/feature` entries forward to other crates
            pending.extend(implied for implied in self.cargo_features.get(feature, []) if "/" not in implied)
        return active

    def directive_stream(self, enabled: Iterable[str] | None = None) -> list[str]:
        searches = directive_lines(self.link_search_directives())
        active = None if enabled is None else self.enabled_closure(enabled)
        return searches + directive_lines(self.build_link_items, active)

    def features_toml(self) -> str:
        table = {name: list(self.cargo_features[name]) for name in sorted(self.cargo_features)}
        return toml.dumps(table)

    def emit(self, cargo_manifest_dir: Path) -> None:
        cargo_manifest_dir = Path(cargo_manifest_dir)
        self.emit_cargo_features(cargo_manifest_dir)
        self.emit_build_llvmup(cargo_manifest_dir)

    def emit_build_llvmup(self, cargo_manifest_dir: Path) -> Path:
        path = cargo_manifest_dir / BUILD_SCRIPT_NAME
        try:
            path.write_text(self.build_script(), encoding="utf-8")
        except OSError as exc:
            raise OutputWriteError(path, str(exc)) from exc
        log.info("generation.build_script", path=str(path), items=len(self.build_link_items))
        return path

    def emit_cargo_features(self, cargo_manifest_dir: Path) -> Path:
        path = cargo_manifest_dir / CARGO_MANIFEST_NAME
        if not path.is_file():
            raise CargoManifestDoesNotExistError(path)
        marker = FEATURES_MARKER.encode("utf-8")
        features = self.features_toml().encode("utf-8")
        try:
            with path.open("r+b") as handle:
                position = handle.read().find(marker)
                if position < 0:
                    raise CargoManifestFeatureSectionNotFoundError(path, FEATURES_MARKER)
                handle.seek(position + len(marker))
                handle.truncate()
                handle.write(features)
        except OSError as exc:
            raise OutputWriteError(path, str(exc)) from exc
        log.info("generation.features", path=str(path), features=len(self.cargo_features))
        return path


class ToolchainConfigGenerator:
    def __init__(
        self,
        context: ToolchainContext,
        directories: Directories,
        external_targets: set[str],
        postorder_sccs: list[list[DependencyNode]],
        crate_dependencies: Mapping[ToolchainComponent, Iterable[str]] | None = None,
        system: ToolchainSys | None = None,
    ) -> None:
        self.context = context
        self.directories = directories
        self.external_targets = external_targets
        self.postorder_sccs = postorder_sccs
        self.crate_dependencies = {component: list(crates) for component, crates in (crate_dependencies or {}).items()}
        self.system = system if system is not None else ToolchainSys.detect()
        self.external_dependents = self.compute_external_dependents()

    def compute_external_dependents(self) -> dict[str, list[str]]:
        """Map each external library name to the owned targets that link it, in group order."""
        dependents: dict[str, list[str]] = {}
        for group in self.postorder_sccs:
            for node in group:
                if node.component is None:
                    continue
                for library in node.unwrapped_link_libraries():
                    if library not in self.external_targets:
                        continue
                    name, _ = classify_reference(library)
                    linked_by = dependents.setdefault(name, [])
                    if node.name not in linked_by:
                        linked_by.append(node.name)
        return dependents

    def generate_cargo_config(self) -> CargoConfig:
        config = CargoConfig(context=self.context, directories=self.directories)
        for group in self.postorder_sccs:
            self.compute_features_and_link_dirs(group, config.cargo_features, config.build_link_dirs)
            self.compute_link_items(group, config.build_link_items)
        log.info(
            "generation.config",
            groups=len(self.postorder_sccs),
            features=len(config.cargo_features),
            link_dirs=len(config.build_link_dirs),
        )
        return config

    def compute_features_and_link_dirs(
        self,
        group: list[DependencyNode],
        features: dict[str, list[str]],
        link_dirs: set[str],
    ) -> None:
        for node in group:
            if node.component is None:
                continue
            link_dirs.update(node.interface_link_directories)
            # external libraries become link directives only, never features
            implied = [
                library for library in sorted(set(node.unwrapped_link_libraries())) if library not in self.external_targets
            ]
            implied.extend(f"{crate}/{node.name}" for crate in self.crate_dependencies.get(node.component, []))
            features[node.name] = implied

    def compute_link_items(self, group: list[DependencyNode], items: list[Item]) -> None:
        if not group:
            return
        if len(group) == 1:
            node = group[0]
            directive = link_instruction(node, self.system)
            if directive is None:
                return
            # external libraries have no feature of their own; they link with their dependents
            gate = tuple(self.external_dependents.get(node.name, [])) if node.is_external else (node.name,)
            if gate:
                items.append(FeatureGated(gate, (directive,)))
            return
        members = [link_instruction(node, self.system) for node in group]
        gate = tuple(node.name for node in group)
        items.append(FeatureGated(gate, (LinkGroup(tuple(member for member in members if member is not None)),)))
