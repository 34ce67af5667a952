from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from llvmup.toolchain.component import ToolchainComponent
from llvmup.toolchain.context import ToolchainContext

MANIFEST_FILE_NAME = "llvmup.json"


@dataclass(frozen=True, slots=True)
class Directories:
    root: Path

    @classmethod
    def create(cls, root: Path | str | None = None) -> Directories:
        if root is None:
            return cls(Path.home() / ".llvmup")
        return cls(Path(root).expanduser())

    @property
    def downloads(self) -> Path:
        return self.root / "downloads"

    @property
    def toolchains(self) -> Path:
        return self.root / "toolchains"

    @property
    def trees(self) -> Path:
        return self.root / "trees"

    def ensure(self) -> None:
        for path in (self.downloads, self.toolchains, self.trees):
            path.mkdir(parents=True, exist_ok=True)

    def toolchain_root_path(self, context: ToolchainContext) -> Path:
        return self.trees / context.tree_name / str(context.platform)

    def manifest_path(self, context: ToolchainContext, component: ToolchainComponent) -> Path:
        return self.toolchain_root_path(context) / "share" / str(component) / MANIFEST_FILE_NAME

    def mold_tree_path(self, component: ToolchainComponent) -> Path:
        return self.trees / f"mold-{component.release}" / str(component.platform)
