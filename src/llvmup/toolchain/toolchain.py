from __future__ import annotations

from dataclasses import dataclass, field

from llvmup.errors import (
    ComponentRequiresDependencyError,
    ComponentRequiresVariantError,
    ComponentUnsupportedPlatformError,
)
from llvmup.toolchain.component import (
    CLANG,
    LLVM,
    ComponentKind,
    ToolchainComponent,
    release_dir_url,
)
from llvmup.toolchain.context import ToolchainContext, ToolchainVariant
from llvmup.toolchain.platform import ToolchainArch, ToolchainSys
from llvmup.utils import stable_id


@dataclass(slots=True)
class ToolchainInstallOptions:
    """Tri-state install switches; ``None`` lets the installer decide from what is on disk."""

    download: bool | None = None
    extract: bool | None = None
    checksum: bool | None = None


@dataclass(frozen=True, slots=True)
class ComponentAsset:
    component: ToolchainComponent
    url: str


@dataclass(frozen=True, slots=True)
class AssetBundle:
    context: ToolchainContext
    checksums_url: str
    assets: list[ComponentAsset] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Toolchain:
    context: ToolchainContext
    components: frozenset[ToolchainComponent]

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", frozenset(self.components))
        validate_components(self)

    @property
    def ordered_components(self) -> list[ToolchainComponent]:
        return sorted(self.components)

    @property
    def handle(self) -> str:
        context = self.context
        parts = [str(context.variant), str(context.release), str(context.revision), str(context.platform)]
        for component in self.ordered_components:
            if component.is_mold:
                parts.append(f"{component}@{component.release}/{component.platform}")
            else:
                parts.append(str(component))
        return stable_id(*parts)

    def asset_bundle(self) -> AssetBundle:
        context = self.context
        checksums = f"{context.variant}-{context.release}-{context.platform}{context.revision}.sha512"
        return AssetBundle(
            context=context,
            checksums_url=f"{release_dir_url(context)}/{checksums}",
            assets=[ComponentAsset(component, component.asset_url(context)) for component in self.ordered_components],
        )


def validate_components(toolchain: Toolchain) -> None:
    context = toolchain.context
    present = toolchain.components
    for component in sorted(present):
        kind = component.kind
        if kind in {ComponentKind.MLIR, ComponentKind.CLANG}:
            if LLVM not in present:
                raise ComponentRequiresDependencyError(component, LLVM)
        elif kind is ComponentKind.SWIFT:
            if context.variant is not ToolchainVariant.SWIFT:
                raise ComponentRequiresVariantError(component, ToolchainVariant.SWIFT)
            for dependency in (LLVM, CLANG):
                if dependency not in present:
                    raise ComponentRequiresDependencyError(component, dependency)
        elif kind is ComponentKind.TOOL_MOLD:
            platform = context.platform
            if platform.sys is not ToolchainSys.LINUX or platform.arch is ToolchainArch.I686:
                raise ComponentUnsupportedPlatformError(component, platform)
