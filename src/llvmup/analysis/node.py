from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

import structlog

from llvmup.errors import TargetNotInherentInManifestsError
from llvmup.manifest import (
    ExecutableTarget,
    InherentTarget,
    InterfaceLibraryTarget,
    SharedLibraryTarget,
    StaticLibraryTarget,
    ToolchainComponentManifest,
)
from llvmup.toolchain.component import ToolchainComponent
from llvmup.toolchain.platform import ToolchainSys

log = structlog.get_logger("llvmup.analysis")

LINK_ONLY_PREFIX = "$<LINK_ONLY:"
LINK_ONLY_SUFFIX = ">"
FRAMEWORK_PREFIX = "-framework "


class KindTag(StrEnum):
    EXECUTABLE = "executable"
    INTERFACE = "interface"
    MODULE = "module"
    OBJECT = "object"
    SHARED = "shared"
    STATIC = "static"


@dataclass(frozen=True, slots=True)
class NodeKind:
    tag: KindTag
    # only meaningful for shared and static libraries
    framework: bool = False

    @classmethod
    def shared(cls, framework: bool = False) -> NodeKind:
        return cls(KindTag.SHARED, framework)

    @classmethod
    def static(cls, framework: bool = False) -> NodeKind:
        return cls(KindTag.STATIC, framework)

    @property
    def is_library(self) -> bool:
        return self.tag in {KindTag.SHARED, KindTag.STATIC}

    @property
    def is_framework(self) -> bool:
        return self.is_library and self.framework

    @property
    def linkage(self) -> str | None:
        """Value used in ``cargo:rustc-link-lib=<linkage>=...``; None for kinds that are never linked."""
        if not self.is_library:
            return None
        if self.framework:
            return "framework"
        return "dylib" if self.tag is KindTag.SHARED else "static"

    def expected_extension(self, system: ToolchainSys | None) -> str | None:
        if self.is_framework:
            return "framework"
        if self.tag is KindTag.SHARED:
            return {
                ToolchainSys.LINUX: "so",
                ToolchainSys.MACOS: "dylib",
                ToolchainSys.WINDOWS: "dll",
            }.get(system)
        if self.tag is KindTag.STATIC:
            return {
                ToolchainSys.LINUX: "a",
                ToolchainSys.MACOS: "a",
                ToolchainSys.WINDOWS: "lib",
            }.get(system)
        return None

    def __str__(self) -> str:
        if self.is_framework:
            return f"{self.tag}+framework"
        return str(self.tag)


EXECUTABLE = NodeKind(KindTag.EXECUTABLE)
INTERFACE = NodeKind(KindTag.INTERFACE)


def unwrap_link_only(reference: str) -> str:
    if reference.startswith(LINK_ONLY_PREFIX) and reference.endswith(LINK_ONLY_SUFFIX):
        return reference[len(LINK_ONLY_PREFIX) : -len(LINK_ONLY_SUFFIX)]
    return reference


def _strip_suffix(name: str, suffix: str) -> str | None:
    if name.endswith(suffix):
        return name[: -len(suffix)]
    return None


def classify_reference(reference: str) -> tuple[str, NodeKind]:
    """Guess name and kind of a link reference that no manifest declares.

    ``-framework Foo`` is a framework, ``[lib]x.a`` a static archive, ``[lib]x.so``
    a shared object; anything else (``m``, ``pthread``, ...) is taken as a shared
    library under its literal name.
    """
    if reference.startswith(FRAMEWORK_PREFIX):
        return reference[len(FRAMEWORK_PREFIX) :], NodeKind.shared(framework=True)
    base = reference.removeprefix("lib")
    name = _strip_suffix(base, ".a")
    if name is not None:
        return name, NodeKind.static()
    name = _strip_suffix(base, ".so")
    if name is not None:
        return name, NodeKind.shared()
    return reference, NodeKind.shared()


@dataclass(frozen=True, slots=True, eq=False)
class DependencyNode:
    name: str
    kind: NodeKind
    component: ToolchainComponent | None = None
    interface_include_directories: tuple[str, ...] = ()
    interface_link_directories: tuple[str, ...] = ()
    interface_link_libraries: tuple[str, ...] = ()
    location: str | None = None

    # identity leaves out component and kind so the same library seen from
    # several manifests collapses into one node
    def identity(self) -> tuple:
        return (self.name, self.interface_include_directories, self.interface_link_libraries, self.location)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyNode):
            return NotImplemented
        return self.identity() == other.identity()

    def __hash__(self) -> int:
        return hash(self.identity())

    @property
    def is_external(self) -> bool:
        return self.component is None

    def unwrapped_link_libraries(self) -> list[str]:
        return [unwrap_link_only(library) for library in self.interface_link_libraries]

    def expected_file_name(self, system: ToolchainSys | None) -> str | None:
        extension = self.kind.expected_extension(system)
        if extension is None:
            return None
        return f"lib{self.name}.{extension}"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "kind": str(self.kind),
            "component": None if self.component is None else str(self.component),
            "interface_include_directories": list(self.interface_include_directories),
            "interface_link_directories": list(self.interface_link_directories),
            "interface_link_libraries": list(self.interface_link_libraries),
            "location": self.location,
        }

    @classmethod
    def from_reference(cls, reference: str) -> DependencyNode:
        name, kind = classify_reference(reference)
        return cls(name=name, kind=kind)

    @classmethod
    def from_target(cls, component: ToolchainComponent, name: str, target: InherentTarget) -> DependencyNode:
        spec = target.target
        if isinstance(spec, ExecutableTarget):
            kind = EXECUTABLE
        elif isinstance(spec, SharedLibraryTarget):
            kind = NodeKind.shared(spec.framework)
        elif isinstance(spec, StaticLibraryTarget):
            kind = NodeKind.static(spec.framework)
        else:
            kind = INTERFACE
        location = None if isinstance(spec, InterfaceLibraryTarget) else spec.location
        return cls(
            name=name,
            kind=kind,
            component=component,
            interface_include_directories=tuple(spec.interface_include_directories),
            interface_link_directories=tuple(spec.interface_link_directories),
            interface_link_libraries=tuple(spec.interface_link_libraries),
            location=location,
        )

    @classmethod
    def from_manifests(
        cls,
        name: str,
        manifests: Mapping[ToolchainComponent, ToolchainComponentManifest],
    ) -> DependencyNode:
        owners: list[ToolchainComponent] = []
        declared = False
        for component in sorted(manifests):
            target = manifests[component].imported_targets.get(name)
            if target is None:
                continue
            declared = True
            if isinstance(target, InherentTarget):
                return cls.from_target(component, name, target)
            owner = target.distribution.to_component()
            if owner not in owners:
                owners.append(owner)
        if declared:
            raise TargetNotInherentInManifestsError(name, owners)
        node = cls.from_reference(name)
        log.debug("analysis.node_external", reference=name, name=node.name, kind=str(node.kind))
        return node
