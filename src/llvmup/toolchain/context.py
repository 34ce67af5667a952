from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from functools import total_ordering

from llvmup.errors import LlvmupError
from llvmup.toolchain.platform import ToolchainPlatform

_RELEASE_RE = re.compile(r"^(\d+)\.(\d+)(?:\.(\d+))?$")


class ToolchainVariant(StrEnum):
    LLVMORG = "llvmorg"
    SWIFT = "swift"


@total_ordering
@dataclass(frozen=True, slots=True)
class ToolchainRelease:
    major: int
    minor: int
    # optional for swift releases
    patch: int | None = None

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}"
        if self.patch is not None:
            text += f".{self.patch}"
        return text

    def __lt__(self, other: ToolchainRelease) -> bool:
        return self._key() < other._key()

    def _key(self) -> tuple[int, int, int]:
        return (self.major, self.minor, -1 if self.patch is None else self.patch)

    @classmethod
    def parse(cls, text: str) -> ToolchainRelease:
        match = _RELEASE_RE.match(str(text).strip())
        if match is None:
            raise LlvmupError(f"invalid toolchain release: {text!r}")
        major, minor, patch = match.groups()
        return cls(int(major), int(minor), None if patch is None else int(patch))


@dataclass(frozen=True, slots=True)
class ToolchainRevision:
    value: int | None = None

    def __str__(self) -> str:
        if self.value is None:
            return ""
        return f"+rev{self.value}"


@dataclass(frozen=True, slots=True)
class ToolchainContext:
    variant: ToolchainVariant
    release: ToolchainRelease
    revision: ToolchainRevision
    platform: ToolchainPlatform

    @property
    def tree_name(self) -> str:
        return f"{self.variant}-{self.release}{self.revision}"
