from __future__ import annotations

import shutil
import tarfile
from pathlib import Path

import structlog

from llvmup.directories import Directories
from llvmup.errors import ArchiveExtractError
from llvmup.toolchain.component import ToolchainComponent
from llvmup.toolchain.context import ToolchainContext
from llvmup.toolchain.download import DownloadedAsset
from llvmup.toolchain.toolchain import ToolchainInstallOptions

log = structlog.get_logger("llvmup.install")


def extract_archive(archive: Path, destination: Path) -> Path:
    destination.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(archive, "r:*") as tar:
            try:
                tar.extractall(path=destination, filter="data")
            except TypeError:
                tar.extractall(path=destination)
    except (tarfile.TarError, OSError) as exc:
        raise ArchiveExtractError(archive, str(exc)) from exc
    return destination


def install_mold(directories: Directories, archive: Path, component: ToolchainComponent) -> Path:
    extract_archive(archive, directories.trees)
    source = directories.trees / component.tree_name_mold()
    target = directories.mold_tree_path(component)
    if target.exists():
        shutil.rmtree(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        source.rename(target)
    except OSError as exc:
        raise ArchiveExtractError(archive, f"cannot move {source} to {target}: {exc}") from exc
    return target


def install_component(directories: Directories, archive: Path, component: ToolchainComponent) -> Path:
    if component.is_mold:
        return install_mold(directories, archive, component)
    return extract_archive(archive, directories.root)


def is_installed(directories: Directories, context: ToolchainContext, component: ToolchainComponent) -> bool:
    if component.is_mold:
        return directories.mold_tree_path(component).is_dir()
    return directories.manifest_path(context, component).is_file()


def install_assets(
    directories: Directories,
    context: ToolchainContext,
    downloaded: list[DownloadedAsset],
    options: ToolchainInstallOptions,
) -> list[ToolchainComponent]:
    """Unpack downloaded archives; returns the components that were extracted."""
    if options.extract is False:
        return []
    installed: list[ToolchainComponent] = []
    for item in downloaded:
        component = item.asset.component
        if options.extract is None and is_installed(directories, context, component):
            log.debug("component.extract_skipped", component=str(component))
            continue
        install_component(directories, item.path, component)
        log.info("component.extracted", asset=item.path.name, component=str(component))
        installed.append(component)
    return installed
