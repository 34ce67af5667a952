from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx

from llvmup.analysis.builder import ToolchainAnalysis
from llvmup.config import LlvmupConfig
from llvmup.generation.cargo import CargoConfig
from llvmup.session import Llvmup
from llvmup.toolchain.component import ToolchainComponent
from llvmup.toolchain.platform import ToolchainSys
from llvmup.toolchain.toolchain import Toolchain
from llvmup.utils import write_json


@dataclass(slots=True)
class AnalysisResult:
    session: Llvmup
    handle: str
    toolchain: Toolchain
    analysis: ToolchainAnalysis


@dataclass(slots=True)
class GenerateResult:
    analysis: ToolchainAnalysis
    cargo: CargoConfig
    outputs: dict[str, Path]


def open_session(config: LlvmupConfig, client: httpx.Client | None = None) -> tuple[Llvmup, str, Toolchain]:
    session = Llvmup(config.directories(), client=client)
    toolchain = config.build_toolchain()
    handle = session.register_toolchain(toolchain)
    return session, handle, toolchain


def analysed_components(toolchain: Toolchain) -> list[ToolchainComponent]:
    # mold ships no manifest
    return [component for component in toolchain.ordered_components if not component.is_mold]


def run_install(config: LlvmupConfig, client: httpx.Client | None = None) -> list[ToolchainComponent]:
    session, handle, _ = open_session(config, client)
    return session.install_toolchain(handle, config.install)


def run_analysis(config: LlvmupConfig, output: Path | None = None) -> AnalysisResult:
    session, handle, toolchain = open_session(config)
    components = analysed_components(toolchain)
    texts = session.load_toolchain_components(handle, components)
    manifests = session.load_toolchain_component_manifests(components, texts)
    analysis = session.analysis(handle, components, manifests)
    if output is not None:
        write_json(output, analysis.to_dict())
    return AnalysisResult(session=session, handle=handle, toolchain=toolchain, analysis=analysis)


def run_generate(config: LlvmupConfig, manifest_dir: Path, system: ToolchainSys | None = None) -> GenerateResult:
    result = run_analysis(config)
    context = result.toolchain.context
    crate_components = config.parse_components(config.crate_components, context)
    generator = result.session.generator(
        context,
        result.analysis,
        crate_components,
        config.crate_dependency_map(context),
        system=system,
    )
    cargo = generator.generate_cargo_config()
    cargo.emit(manifest_dir)
    outputs = {
        "build_script": manifest_dir / "build_llvmup.rs",
        "cargo_manifest": manifest_dir / "Cargo.toml",
    }
    return GenerateResult(analysis=result.analysis, cargo=cargo, outputs=outputs)
