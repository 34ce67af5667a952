from __future__ import annotations

from collections.abc import Iterable, Mapping

import httpx
import structlog

from llvmup.analysis.builder import ToolchainAnalysis, build_analysis
from llvmup.directories import Directories
from llvmup.errors import (
    AnalysisNotPerformedForComponentError,
    ComponentNotLoadedError,
    ComponentNotRegisteredError,
    ToolchainNotRegisteredError,
)
from llvmup.generation.cargo import ToolchainConfigGenerator
from llvmup.manifest import ToolchainComponentManifest, parse_manifest
from llvmup.toolchain.component import ToolchainComponent
from llvmup.toolchain.context import ToolchainContext
from llvmup.toolchain.download import download_bundle
from llvmup.toolchain.install import install_assets
from llvmup.toolchain.platform import ToolchainSys
from llvmup.toolchain.toolchain import Toolchain, ToolchainInstallOptions

log = structlog.get_logger("llvmup.session")


class Llvmup:
    """Registry of toolchains plus the install -> load -> analyse -> generate steps."""

    def __init__(self, directories: Directories | None = None, client: httpx.Client | None = None) -> None:
        self.directories = directories if directories is not None else Directories.create()
        self.client = client
        self.toolchains: dict[str, Toolchain] = {}

    def register_toolchain(self, toolchain: Toolchain) -> str:
        handle = toolchain.handle
        self.toolchains[handle] = toolchain
        log.debug("toolchain.registered", handle=handle, components=[str(c) for c in toolchain.ordered_components])
        return handle

    def toolchain(self, handle: str) -> Toolchain:
        toolchain = self.toolchains.get(handle)
        if toolchain is None:
            raise ToolchainNotRegisteredError(handle)
        return toolchain

    def toolchain_components(self, handle: str) -> list[ToolchainComponent]:
        return self.toolchain(handle).ordered_components

    def install_toolchain(self, handle: str, options: ToolchainInstallOptions | None = None) -> list[ToolchainComponent]:
        toolchain = self.toolchain(handle)
        options = options or ToolchainInstallOptions()
        downloaded = download_bundle(toolchain.asset_bundle(), self.directories, options, client=self.client)
        return install_assets(self.directories, toolchain.context, downloaded, options)

    def load_toolchain_components(
        self,
        handle: str,
        components: Iterable[ToolchainComponent],
    ) -> dict[ToolchainComponent, str]:
        toolchain = self.toolchain(handle)
        texts: dict[ToolchainComponent, str] = {}
        for component in components:
            if component in texts:
                continue
            if component not in toolchain.components:
                raise ComponentNotRegisteredError(handle, component)
            path = self.directories.manifest_path(toolchain.context, component)
            try:
                texts[component] = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise ComponentNotLoadedError(component) from exc
            log.debug("manifest.loaded", component=str(component), path=str(path))
        return texts

    def load_toolchain_component_manifests(
        self,
        components: Iterable[ToolchainComponent],
        texts: Mapping[ToolchainComponent, str],
    ) -> dict[ToolchainComponent, ToolchainComponentManifest]:
        wanted = set(components)
        return {
            component: parse_manifest(component, text)
            for component, text in sorted(texts.items())
            if component in wanted
        }

    def analysis(
        self,
        handle: str,
        components: Iterable[ToolchainComponent],
        manifests: Mapping[ToolchainComponent, ToolchainComponentManifest],
    ) -> ToolchainAnalysis:
        return build_analysis(handle, components, manifests)

    def generator(
        self,
        context: ToolchainContext,
        analysis: ToolchainAnalysis,
        crate_components: Iterable[ToolchainComponent],
        crate_dependencies: Mapping[ToolchainComponent, Iterable[str]] | None = None,
        system: ToolchainSys | None = None,
    ) -> ToolchainConfigGenerator:
        for component in crate_components:
            if component not in analysis.components:
                raise AnalysisNotPerformedForComponentError(component)
        return ToolchainConfigGenerator(
            context,
            self.directories,
            analysis.external_targets,
            analysis.postorder_sccs(),
            crate_dependencies,
            system=system,
        )
