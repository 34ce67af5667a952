"""Schema of the per-component ``llvmup.json`` manifest.

The manifest is CMake's exported-target table serialised as JSON::

    {"cmakeProperties": {"IMPORTED_TARGETS": {
        "LLVMSupport": {"llvmupTargetKind": "inherent", "IMPORTED": "TRUE", "NAME": "LLVMSupport",
                        "SYSTEM": "FALSE", "TYPE": "STATIC_LIBRARY", "LOCATION": "lib/libLLVMSupport.a", ...},
        "clangBasic": {"llvmupTargetKind": "adjacent", "llvmupDistribution": "clang"}}}}

Inherent targets are fully described by the manifest; adjacent ones are only
placeholders for targets that belong to another distribution.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, model_validator

from llvmup.errors import ManifestParseError
from llvmup.toolchain.component import ComponentKind, ToolchainComponent


def parse_cmake_bool(value: Any) -> bool:
    if isinstance(value, str):
        if value in {"TRUE", "ON"}:
            return True
        if value in {"FALSE", "OFF"}:
            return False
    raise ValueError(f"expected a valid CMake boolean value, found `{value}`")


CMakeBool = Annotated[bool, BeforeValidator(parse_cmake_bool)]
StringList = tuple[str, ...]


class ManifestDistribution(StrEnum):
    CLANG = "clang"
    LLVM = "llvm"
    MLIR = "mlir"
    SWIFT = "swift"
    TOOL_CLANG = "tool_clang"
    TOOL_LLD = "tool_lld"

    def to_component(self) -> ToolchainComponent:
        return ToolchainComponent(ComponentKind(self.value))


class _Target(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    interface_include_directories: StringList = Field(default=(), alias="INTERFACE_INCLUDE_DIRECTORIES")
    interface_link_directories: StringList = Field(default=(), alias="INTERFACE_LINK_DIRECTORIES")
    interface_link_libraries: StringList = Field(default=(), alias="INTERFACE_LINK_LIBRARIES")


class _LocatedTarget(_Target):
    imported_configurations: StringList = Field(default=(), alias="IMPORTED_CONFIGURATIONS")
    location: str = Field(alias="LOCATION")
    location_config: str = Field(default="", alias="LOCATION_<CONFIG>")
    macosx_package_location: str = Field(default="", alias="MACOSX_PACKAGE_LOCATION")
    vs_deployment_location: str = Field(default="", alias="VS_DEPLOYMENT_LOCATION")


class ExecutableTarget(_LocatedTarget):
    type: Literal["EXECUTABLE"] = Field(alias="TYPE")


class InterfaceLibraryTarget(_Target):
    type: Literal["INTERFACE_LIBRARY"] = Field(alias="TYPE")


class SharedLibraryTarget(_LocatedTarget):
    type: Literal["SHARED_LIBRARY"] = Field(alias="TYPE")
    framework: CMakeBool = Field(default=False, alias="FRAMEWORK")


class StaticLibraryTarget(_LocatedTarget):
    type: Literal["STATIC_LIBRARY"] = Field(alias="TYPE")
    framework: CMakeBool = Field(default=False, alias="FRAMEWORK")


InherentTargetSpec = Annotated[
    Union[ExecutableTarget, InterfaceLibraryTarget, SharedLibraryTarget, StaticLibraryTarget],
    Field(discriminator="type"),
]

_INHERENT_OUTER_KEYS = ("llvmupTargetKind", "IMPORTED", "NAME", "SYSTEM")


class AdjacentTarget(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["adjacent"] = Field(alias="llvmupTargetKind")
    distribution: ManifestDistribution = Field(alias="llvmupDistribution")


class InherentTarget(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["inherent"] = Field(alias="llvmupTargetKind")
    imported: CMakeBool = Field(alias="IMPORTED")
    name: str = Field(alias="NAME")
    system: CMakeBool = Field(alias="SYSTEM")
    target: InherentTargetSpec

    @model_validator(mode="before")
    @classmethod
    def _nest_target(cls, data: Any) -> Any:
        # the typed part of an inherent target is flattened into the same object
        if isinstance(data, dict) and "target" not in data:
            outer = {key: data[key] for key in _INHERENT_OUTER_KEYS if key in data}
            outer["target"] = {key: value for key, value in data.items() if key not in _INHERENT_OUTER_KEYS}
            return outer
        return data


ImportedTarget = Annotated[Union[AdjacentTarget, InherentTarget], Field(discriminator="kind")]


class CMakeProperties(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    imported_targets: dict[str, ImportedTarget] = Field(alias="IMPORTED_TARGETS")


class ToolchainComponentManifest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    cmake_properties: CMakeProperties = Field(alias="cmakeProperties")

    @property
    def imported_targets(self) -> dict[str, AdjacentTarget | InherentTarget]:
        return self.cmake_properties.imported_targets

    def inherent_targets(self) -> list[tuple[str, InherentTarget]]:
        return [(key, target) for key, target in self.imported_targets.items() if isinstance(target, InherentTarget)]


def parse_manifest(component: ToolchainComponent | str, text: str | bytes) -> ToolchainComponentManifest:
    try:
        return ToolchainComponentManifest.model_validate_json(text)
    except ValidationError as exc:
        raise ManifestParseError(str(component), str(exc)) from exc
