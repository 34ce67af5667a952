from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from llvmup.directories import Directories
from llvmup.errors import ConfigError
from llvmup.log import LogMode
from llvmup.toolchain.component import ToolchainComponent
from llvmup.toolchain.context import ToolchainContext, ToolchainRelease, ToolchainRevision, ToolchainVariant
from llvmup.toolchain.platform import ToolchainPlatform
from llvmup.toolchain.toolchain import Toolchain, ToolchainInstallOptions
from llvmup.utils import parse_flag

DEFAULT_CONFIG_NAME = "llvmup.yaml"

DEFAULT_CONFIG = """# llvmup: LLVM/Clang toolchain for this crate
root: ""
toolchain:
  variant: llvmorg
  release: "17.0.6"
  revision: null
  platform: auto
components:
  - llvm
  - clang
crate_components:
  - llvm
  - clang
crate_dependencies: {}
install:
  download: null
  extract: null
  checksum: null
logging:
  mode: silent
  level: INFO
  file: ""
"""

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _choices(values: Iterable[str]) -> str:
    return "expected one of " + ", ".join(str(value) for value in values)


def _parse_revision(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        revision = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError("toolchain.revision", value, "expected a non-negative integer") from exc
    if revision < 0:
        raise ConfigError("toolchain.revision", value, "expected a non-negative integer")
    return revision


@dataclass(slots=True)
class ToolchainSettings:
    variant: str = "llvmorg"
    release: str = "17.0.6"
    revision: int | None = None
    platform: str = "auto"

    def resolve_platform(self) -> ToolchainPlatform:
        if self.platform in {"", "auto"}:
            return ToolchainPlatform.detect()
        try:
            return ToolchainPlatform(self.platform)
        except ValueError as exc:
            raise ConfigError("toolchain.platform", self.platform, _choices(ToolchainPlatform)) from exc

    def resolve_variant(self) -> ToolchainVariant:
        try:
            return ToolchainVariant(self.variant)
        except ValueError as exc:
            raise ConfigError("toolchain.variant", self.variant, _choices(ToolchainVariant)) from exc

    def context(self) -> ToolchainContext:
        return ToolchainContext(
            variant=self.resolve_variant(),
            release=ToolchainRelease.parse(self.release),
            revision=ToolchainRevision(self.revision),
            platform=self.resolve_platform(),
        )


@dataclass(slots=True)
class LoggingConfig:
    mode: str = LogMode.SILENT.value
    level: str = "INFO"
    file: str = ""

    @property
    def file_path(self) -> Path | None:
        return Path(self.file) if self.file else None


@dataclass(slots=True)
class LlvmupConfig:
    root: str = ""
    toolchain: ToolchainSettings = field(default_factory=ToolchainSettings)
    components: list[str] = field(default_factory=lambda: ["llvm", "clang"])
    crate_components: list[str] = field(default_factory=list)
    crate_dependencies: dict[str, list[str]] = field(default_factory=dict)
    install: ToolchainInstallOptions = field(default_factory=ToolchainInstallOptions)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def default(cls) -> LlvmupConfig:
        return cls.from_dict(yaml.safe_load(DEFAULT_CONFIG))

    @classmethod
    def from_path(cls, path: Path) -> LlvmupConfig:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError("config", str(path), str(exc)) from exc
        if not isinstance(data, dict):
            raise ConfigError("config", str(path), "expected a mapping at the top level")
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: Path | None) -> LlvmupConfig:
        if path is not None and path.exists():
            return cls.from_path(path)
        return cls.default()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LlvmupConfig:
        toolchain_data = data.get("toolchain") or {}
        revision = toolchain_data.get("revision")
        toolchain = ToolchainSettings(
            variant=str(toolchain_data.get("variant", "llvmorg")),
            release=str(toolchain_data.get("release", "17.0.6")),
            revision=_parse_revision(revision),
            platform=str(toolchain_data.get("platform") or "auto"),
        )
        install_data = data.get("install") or {}
        install = ToolchainInstallOptions(
            download=install_data.get("download"),
            extract=install_data.get("extract"),
            checksum=install_data.get("checksum"),
        )
        logging_data = data.get("logging") or {}
        logging = LoggingConfig(
            mode=str(logging_data.get("mode", LogMode.SILENT.value)),
            level=str(logging_data.get("level", "INFO")),
            file=str(logging_data.get("file") or ""),
        )
        crate_dependencies = {
            str(component): [str(crate) for crate in crates or []]
            for component, crates in (data.get("crate_dependencies") or {}).items()
        }

        root = str(data.get("root") or "")

        env_root = os.getenv("LLVMUP_ROOT", "").strip()
        env_platform = os.getenv("LLVMUP_PLATFORM", "").strip()
        env_logger = os.getenv("LLVMUP_LOGGER", "").strip().lower()
        env_level = os.getenv("LLVMUP_LOG_LEVEL", "").strip()

        if env_root:
            root = env_root
        if env_platform:
            toolchain.platform = env_platform
        if env_logger:
            logging.mode = env_logger
        if env_level:
            logging.level = env_level.upper()
        for name in ("download", "extract", "checksum"):
            flag = parse_flag(os.getenv(f"LLVMUP_{name.upper()}"))
            if flag is not None:
                setattr(install, name, flag)

        if logging.mode not in {mode.value for mode in LogMode}:
            raise ConfigError("logging.mode", logging.mode, _choices(LogMode))
        if logging.level.upper() not in _LOG_LEVELS:
            raise ConfigError("logging.level", logging.level, _choices(_LOG_LEVELS))

        return cls(
            root=root,
            toolchain=toolchain,
            components=[str(item) for item in data.get("components") or []],
            crate_components=[str(item) for item in data.get("crate_components") or []],
            crate_dependencies=crate_dependencies,
            install=install,
            logging=logging,
        )

    def directories(self) -> Directories:
        return Directories.create(self.root or None)

    def context(self) -> ToolchainContext:
        return self.toolchain.context()

    def parse_components(self, names: list[str], context: ToolchainContext) -> list[ToolchainComponent]:
        return sorted({ToolchainComponent.parse(name, context.platform) for name in names})

    def build_toolchain(self) -> Toolchain:
        context = self.context()
        return Toolchain(context, frozenset(self.parse_components(self.components, context)))

    def crate_dependency_map(self, context: ToolchainContext) -> dict[ToolchainComponent, list[str]]:
        return {
            ToolchainComponent.parse(name, context.platform): crates for name, crates in self.crate_dependencies.items()
        }


def ensure_config(path: Path, force: bool = False) -> bool:
    if path.exists() and not force:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG, encoding="utf-8")
    return True
