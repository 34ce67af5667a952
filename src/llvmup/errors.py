from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from llvmup.toolchain.component import ToolchainComponent
    from llvmup.toolchain.context import ToolchainVariant
    from llvmup.toolchain.platform import ToolchainPlatform


class LlvmupError(RuntimeError):
    pass


class ConfigError(LlvmupError):
    def __init__(self, key: str, value: object, details: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"invalid `{key}` value {value!r}: {details}")


# analysis


class ComponentNotLoadedError(LlvmupError):
    def __init__(self, component: ToolchainComponent) -> None:
        self.component = component
        super().__init__(f"component `{component}` has no loaded manifest")


class TargetNotInherentInManifestsError(LlvmupError):
    def __init__(self, name: str, owners: list[ToolchainComponent] | None = None) -> None:
        self.name = name
        self.owners = owners or []
        message = f"target `{name}` is only declared as an adjacent target in the loaded manifests"
        if self.owners:
            message += f" (provided by {', '.join(str(owner) for owner in self.owners)})"
        super().__init__(message)


class ManifestParseError(LlvmupError):
    def __init__(self, component: str, details: str) -> None:
        self.component = component
        self.details = details
        super().__init__(f"invalid manifest for component `{component}`: {details}")


# generation


class TargetFileNameNotFoundError(LlvmupError):
    def __init__(self, name: str, location: str) -> None:
        self.name = name
        self.location = location
        super().__init__(f"location `{location}` of target `{name}` has no file name")


class LibraryParentDirNotInLinkDirectoriesError(LlvmupError):
    def __init__(self, name: str, parent: str, link_directories: list[str]) -> None:
        self.name = name
        self.parent = parent
        self.link_directories = link_directories
        super().__init__(
            f"parent directory `{parent}` of target `{name}` is not one of its "
            f"interface link directories {link_directories}"
        )


class CargoManifestDoesNotExistError(LlvmupError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"cargo manifest does not exist: {path}")


class CargoManifestFeatureSectionNotFoundError(LlvmupError):
    def __init__(self, path: Path, marker: str) -> None:
        self.path = path
        self.marker = marker
        super().__init__(f"cargo manifest {path} has no `{marker.strip()}` section marker")


class OutputWriteError(LlvmupError):
    def __init__(self, path: Path, details: str) -> None:
        self.path = path
        self.details = details
        super().__init__(f"cannot write {path}: {details}")


# toolchain


class ComponentRequiresDependencyError(LlvmupError):
    def __init__(self, component: ToolchainComponent, dependency: ToolchainComponent) -> None:
        self.component = component
        self.dependency = dependency
        super().__init__(f"component `{component}` requires component `{dependency}`")


class ComponentRequiresVariantError(LlvmupError):
    def __init__(self, component: ToolchainComponent, variant: ToolchainVariant) -> None:
        self.component = component
        self.variant = variant
        super().__init__(f"component `{component}` requires the `{variant}` toolchain variant")


class ComponentUnsupportedPlatformError(LlvmupError):
    def __init__(self, component: ToolchainComponent, platform: ToolchainPlatform) -> None:
        self.component = component
        self.platform = platform
        super().__init__(f"component `{component}` is not available for platform `{platform}`")


class ToolchainNotRegisteredError(LlvmupError):
    def __init__(self, handle: str) -> None:
        self.handle = handle
        super().__init__(f"toolchain `{handle}` is not registered")


class ComponentNotRegisteredError(LlvmupError):
    def __init__(self, handle: str, component: ToolchainComponent) -> None:
        self.handle = handle
        self.component = component
        super().__init__(f"component `{component}` is not part of toolchain `{handle}`")


class AnalysisNotPerformedForComponentError(LlvmupError):
    def __init__(self, component: ToolchainComponent) -> None:
        self.component = component
        super().__init__(f"no analysis was performed for component `{component}`")


# install


class AssetUrlMissingFileSegmentError(LlvmupError):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"asset url has no file segment: {url}")


class DownloadError(LlvmupError):
    def __init__(self, url: str, details: str) -> None:
        self.url = url
        super().__init__(f"download of {url} failed: {details}")


class ChecksumsParseError(LlvmupError):
    def __init__(self, line: str, details: str) -> None:
        self.line = line
        super().__init__(f"invalid checksum entry `{line}`: {details}")


class ChecksumMismatchError(LlvmupError):
    def __init__(self, filename: str, expected: str, actual: str) -> None:
        self.filename = filename
        self.expected = expected
        self.actual = actual
        super().__init__(f"checksum mismatch for {filename}: expected {expected[:16]}…, got {actual[:16]}…")


class ArchiveExtractError(LlvmupError):
    def __init__(self, path: Path, details: str) -> None:
        self.path = path
        super().__init__(f"failed to extract {path}: {details}")
