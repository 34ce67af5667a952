from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import structlog

from llvmup.analysis.graph import DependencyGraph
from llvmup.analysis.node import DependencyNode, unwrap_link_only
from llvmup.analysis.scc import tarjan_scc
from llvmup.errors import ComponentNotLoadedError
from llvmup.manifest import InherentTarget, InterfaceLibraryTarget, StaticLibraryTarget, ToolchainComponentManifest
from llvmup.toolchain.component import ToolchainComponent

log = structlog.get_logger("llvmup.analysis")


@dataclass(slots=True)
class ToolchainAnalysis:
    handle: str
    components: list[ToolchainComponent]
    components_targets: dict[ToolchainComponent, dict[str, InherentTarget]] = field(default_factory=dict)
    targets_component: dict[str, ToolchainComponent] = field(default_factory=dict)
    dependencies: DependencyGraph = field(default_factory=DependencyGraph)
    external_targets: set[str] = field(default_factory=set)

    def postorder_sccs(self) -> list[list[DependencyNode]]:
        return tarjan_scc(self.dependencies)

    def summary(self) -> dict:
        groups = self.postorder_sccs()
        return {
            "handle": self.handle,
            "components": [str(component) for component in self.components],
            "targets": sum(len(targets) for targets in self.components_targets.values()),
            "nodes": self.dependencies.node_count(),
            "edges": self.dependencies.edge_count(),
            "external_targets": len(self.external_targets),
            "link_groups": len(groups),
            "link_cycles": sum(1 for group in groups if len(group) > 1),
        }

    def to_dict(self) -> dict:
        payload = self.summary()
        payload["external_target_names"] = sorted(self.external_targets)
        payload["graph"] = self.dependencies.to_dict()
        payload["sccs"] = [[node.name for node in group] for group in self.postorder_sccs()]
        return payload


def build_analysis(
    handle: str,
    components: Iterable[ToolchainComponent],
    manifests: Mapping[ToolchainComponent, ToolchainComponentManifest],
) -> ToolchainAnalysis:
    analysis = ToolchainAnalysis(handle=handle, components=sorted(set(components)))
    memo: dict[str, DependencyNode] = {}

    for component in analysis.components:
        manifest = manifests.get(component)
        if manifest is None:
            raise ComponentNotLoadedError(component)

        targets: dict[str, InherentTarget] = {}
        for name, target in manifest.inherent_targets():
            analysis.targets_component[name] = component
            targets[name] = target
            if not isinstance(target.target, (StaticLibraryTarget, InterfaceLibraryTarget)):
                continue

            node = analysis.dependencies.add_node(DependencyNode.from_target(component, name, target))
            for library in node.interface_link_libraries:
                reference = unwrap_link_only(library)
                lib_node = memo.get(reference)
                if lib_node is None:
                    lib_node = DependencyNode.from_manifests(reference, manifests)
                    memo[reference] = lib_node
                lib_node = analysis.dependencies.add_node(lib_node)
                analysis.dependencies.add_edge(node, lib_node)
                if lib_node.is_external:
                    analysis.external_targets.add(reference)

        analysis.components_targets[component] = targets
        log.debug("analysis.component", component=str(component), targets=len(targets))

    log.info(
        "analysis.built",
        nodes=analysis.dependencies.node_count(),
        edges=analysis.dependencies.edge_count(),
        external=len(analysis.external_targets),
    )
    return analysis
