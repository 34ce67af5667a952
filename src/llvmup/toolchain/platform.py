from __future__ import annotations

import platform as host
import sys
from enum import StrEnum

from llvmup.errors import LlvmupError


class ToolchainArch(StrEnum):
    AARCH64 = "aarch64"
    ARM = "arm"
    ARM64 = "arm64"
    I686 = "i686"
    POWERPC64LE = "powerpc64le"
    RISCV64 = "riscv64"
    S390X = "s390x"
    X86_64 = "x86_64"

    def matches(self, other: ToolchainArch) -> bool:
        # aarch64 and arm64 name the same architecture
        aliases = {ToolchainArch.AARCH64, ToolchainArch.ARM64}
        if self in aliases and other in aliases:
            return True
        return self is other


class ToolchainSys(StrEnum):
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"

    @classmethod
    def detect(cls) -> ToolchainSys | None:
        if sys.platform.startswith("linux"):
            return cls.LINUX
        if sys.platform == "darwin":
            return cls.MACOS
        if sys.platform in {"win32", "cygwin"}:
            return cls.WINDOWS
        return None


class ToolchainPlatform(StrEnum):
    AARCH64_LINUX_GNU = "aarch64-linux-gnu"
    AARCH64_WINDOWS_MSVC = "aarch64-windows-msvc"
    ARM64_MACOS = "arm64-macos"
    ARMV7_LINUX_GNUEABIHF = "armv7-linux-gnueabihf"
    I686_LINUX_GNU = "i686-linux-gnu"
    POWERPC64LE_LINUX_GNU = "powerpc64le-linux-gnu"
    RISCV64_LINUX_GNU = "riscv64-linux-gnu"
    S390X_LINUX_GNU = "s390x-linux-gnu"
    X86_64_MACOS = "x86_64-macos"
    X86_64_LINUX_GNU = "x86_64-linux-gnu"
    X86_64_WINDOWS_MSVC = "x86_64-windows-msvc"

    @property
    def arch(self) -> ToolchainArch:
        return _PLATFORM_ARCH[self]

    @property
    def sys(self) -> ToolchainSys:
        return _PLATFORM_SYS[self]

    @classmethod
    def detect(cls) -> ToolchainPlatform:
        system = ToolchainSys.detect()
        machine = host.machine().lower()
        arch = _MACHINE_ALIASES.get(machine)
        for candidate in cls:
            if candidate.sys is system and arch is not None and candidate.arch.matches(arch):
                return candidate
        raise LlvmupError(f"unsupported host platform: {sys.platform}/{machine}")


_PLATFORM_ARCH = {
    ToolchainPlatform.AARCH64_LINUX_GNU: ToolchainArch.AARCH64,
    ToolchainPlatform.AARCH64_WINDOWS_MSVC: ToolchainArch.AARCH64,
    ToolchainPlatform.ARM64_MACOS: ToolchainArch.ARM64,
    ToolchainPlatform.ARMV7_LINUX_GNUEABIHF: ToolchainArch.ARM,
    ToolchainPlatform.I686_LINUX_GNU: ToolchainArch.I686,
    ToolchainPlatform.POWERPC64LE_LINUX_GNU: ToolchainArch.POWERPC64LE,
    ToolchainPlatform.RISCV64_LINUX_GNU: ToolchainArch.RISCV64,
    ToolchainPlatform.S390X_LINUX_GNU: ToolchainArch.S390X,
    ToolchainPlatform.X86_64_MACOS: ToolchainArch.X86_64,
    ToolchainPlatform.X86_64_LINUX_GNU: ToolchainArch.X86_64,
    ToolchainPlatform.X86_64_WINDOWS_MSVC: ToolchainArch.X86_64,
}

_PLATFORM_SYS = {
    ToolchainPlatform.AARCH64_LINUX_GNU: ToolchainSys.LINUX,
    ToolchainPlatform.AARCH64_WINDOWS_MSVC: ToolchainSys.WINDOWS,
    ToolchainPlatform.ARM64_MACOS: ToolchainSys.MACOS,
    ToolchainPlatform.ARMV7_LINUX_GNUEABIHF: ToolchainSys.LINUX,
    ToolchainPlatform.I686_LINUX_GNU: ToolchainSys.LINUX,
    ToolchainPlatform.POWERPC64LE_LINUX_GNU: ToolchainSys.LINUX,
    ToolchainPlatform.RISCV64_LINUX_GNU: ToolchainSys.LINUX,
    ToolchainPlatform.S390X_LINUX_GNU: ToolchainSys.LINUX,
    ToolchainPlatform.X86_64_MACOS: ToolchainSys.MACOS,
    ToolchainPlatform.X86_64_LINUX_GNU: ToolchainSys.LINUX,
    ToolchainPlatform.X86_64_WINDOWS_MSVC: ToolchainSys.WINDOWS,
}

_MACHINE_ALIASES = {
    "aarch64": ToolchainArch.AARCH64,
    "arm64": ToolchainArch.ARM64,
    "armv7l": ToolchainArch.ARM,
    "armv7": ToolchainArch.ARM,
    "i386": ToolchainArch.I686,
    "i686": ToolchainArch.I686,
    "x86": ToolchainArch.I686,
    "ppc64le": ToolchainArch.POWERPC64LE,
    "powerpc64le": ToolchainArch.POWERPC64LE,
    "riscv64": ToolchainArch.RISCV64,
    "s390x": ToolchainArch.S390X,
    "amd64": ToolchainArch.X86_64,
    "x86_64": ToolchainArch.X86_64,
}
