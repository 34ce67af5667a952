from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from functools import total_ordering
from urllib.parse import quote

from llvmup.errors import ComponentUnsupportedPlatformError, LlvmupError
from llvmup.toolchain.context import ToolchainContext, ToolchainRelease
from llvmup.toolchain.platform import ToolchainPlatform

TOOLCHAINS_REPO = "https://github.com/llvmup/toolchains"
MOLD_REPO = "https://github.com/rui314/mold"


class ComponentKind(StrEnum):
    LLVM = "llvm"
    MLIR = "mlir"
    CLANG = "clang"
    SWIFT = "swift"
    TOOL_CLANG = "tool_clang"
    TOOL_LLD = "tool_lld"
    TOOL_MOLD = "tool_mold"


# tool_lld sorts before tool_clang
_RANK = {
    ComponentKind.LLVM: 0,
    ComponentKind.MLIR: 1,
    ComponentKind.CLANG: 2,
    ComponentKind.SWIFT: 3,
    ComponentKind.TOOL_LLD: 4,
    ComponentKind.TOOL_CLANG: 5,
    ComponentKind.TOOL_MOLD: 6,
}

_MOLD_ARCH = {
    ToolchainPlatform.AARCH64_LINUX_GNU: "aarch64",
    ToolchainPlatform.ARMV7_LINUX_GNUEABIHF: "arm",
    ToolchainPlatform.POWERPC64LE_LINUX_GNU: "ppc64le",
    ToolchainPlatform.RISCV64_LINUX_GNU: "riscv64",
    ToolchainPlatform.S390X_LINUX_GNU: "s390x",
    ToolchainPlatform.X86_64_LINUX_GNU: "x86_64",
}

_PLATFORM_ORDER = {platform: index for index, platform in enumerate(ToolchainPlatform)}


@total_ordering
@dataclass(frozen=True, slots=True)
class ToolchainComponent:
    kind: ComponentKind
    # only set for tool_mold, which ships from its own release stream
    platform: ToolchainPlatform | None = None
    release: ToolchainRelease | None = None

    def __str__(self) -> str:
        return str(self.kind)

    def __lt__(self, other: ToolchainComponent) -> bool:
        if not isinstance(other, ToolchainComponent):
            return NotImplemented
        return self._key() < other._key()

    def _key(self) -> tuple:
        if self.kind is ComponentKind.TOOL_MOLD and self.platform is not None and self.release is not None:
            return (_RANK[self.kind], _PLATFORM_ORDER[self.platform], self.release._key())
        return (_RANK[self.kind], -1, (-1, -1, -1))

    @property
    def is_mold(self) -> bool:
        return self.kind is ComponentKind.TOOL_MOLD

    @classmethod
    def mold(cls, platform: ToolchainPlatform, release: ToolchainRelease) -> ToolchainComponent:
        return cls(ComponentKind.TOOL_MOLD, platform, release)

    @classmethod
    def parse(cls, text: str, platform: ToolchainPlatform | None = None) -> ToolchainComponent:
        """Parse `llvm`, `clang`, ... or `tool_mold@<release>`."""
        name, _, release = text.strip().partition("@")
        try:
            kind = ComponentKind(name)
        except ValueError as exc:
            raise LlvmupError(f"unknown toolchain component: {text!r}") from exc
        if kind is ComponentKind.TOOL_MOLD:
            if not release or platform is None:
                raise LlvmupError("tool_mold requires a release (`tool_mold@<release>`) and a platform")
            return cls.mold(platform, ToolchainRelease.parse(release))
        if release:
            raise LlvmupError(f"component `{name}` does not take a release")
        return cls(kind)

    def tree_name_mold(self) -> str:
        assert self.platform is not None and self.release is not None
        arch = _MOLD_ARCH.get(self.platform)
        if arch is None:
            raise ComponentUnsupportedPlatformError(self, self.platform)
        return f"mold-{self.release}-{arch}-linux"

    def asset_url(self, context: ToolchainContext) -> str:
        if self.is_mold:
            assert self.release is not None
            return f"{MOLD_REPO}/releases/download/v{self.release}/{self.tree_name_mold()}.tar.gz"
        file_name = (
            f"{self}-{context.variant}-{context.release}-{context.platform}{context.revision}.tar.xz"
        )
        return f"{release_dir_url(context)}/{file_name}"


def release_dir_url(context: ToolchainContext) -> str:
    release_dir = quote(context.tree_name, safe="")
    return f"{TOOLCHAINS_REPO}/releases/download/{release_dir}"


LLVM = ToolchainComponent(ComponentKind.LLVM)
MLIR = ToolchainComponent(ComponentKind.MLIR)
CLANG = ToolchainComponent(ComponentKind.CLANG)
SWIFT = ToolchainComponent(ComponentKind.SWIFT)
TOOL_CLANG = ToolchainComponent(ComponentKind.TOOL_CLANG)
TOOL_LLD = ToolchainComponent(ComponentKind.TOOL_LLD)
