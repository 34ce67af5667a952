from __future__ import annotations

import io
import tarfile
from pathlib import Path

import pytest

from llvmup.directories import Directories
from llvmup.errors import ArchiveExtractError
from llvmup.toolchain.component import LLVM, ComponentKind, ToolchainComponent
from llvmup.toolchain.context import ToolchainContext, ToolchainRelease, ToolchainRevision, ToolchainVariant
from llvmup.toolchain.download import DownloadedAsset
from llvmup.toolchain.install import extract_archive, install_assets, is_installed
from llvmup.toolchain.platform import ToolchainPlatform
from llvmup.toolchain.toolchain import ComponentAsset, ToolchainInstallOptions

CONTEXT = ToolchainContext(
    ToolchainVariant.LLVMORG, ToolchainRelease(17, 0, 6), ToolchainRevision(None), ToolchainPlatform.X86_64_LINUX_GNU
)
MOLD = ToolchainComponent.mold(ToolchainPlatform.X86_64_LINUX_GNU, ToolchainRelease(2, 4, 0))


def _archive(path: Path, files: dict[str, bytes], mode: str = "w:xz") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, mode) as tar:
        for name, payload in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(payload)
            tar.addfile(info, io.BytesIO(payload))
    return path


def _llvm_archive(tmp_path: Path) -> DownloadedAsset:
    archive = _archive(
        tmp_path / "downloads" / "llvm.tar.xz",
        {
            "trees/llvmorg-17.0.6/x86_64-linux-gnu/share/llvm/llvmup.json": b"{}",
            "trees/llvmorg-17.0.6/x86_64-linux-gnu/lib/libLLVMSupport.a": b"!<arch>\n",
        },
    )
    return DownloadedAsset(ComponentAsset(LLVM, "https://example.com/llvm.tar.xz"), archive)


def test_component_archive_unpacks_into_root(tmp_path: Path) -> None:
    directories = Directories.create(tmp_path / "root")

    installed = install_assets(directories, CONTEXT, [_llvm_archive(tmp_path)], ToolchainInstallOptions())

    assert installed == [LLVM]
    assert directories.manifest_path(CONTEXT, LLVM).read_text(encoding="utf-8") == "{}"
    assert (directories.toolchain_root_path(CONTEXT) / "lib" / "libLLVMSupport.a").is_file()
    assert is_installed(directories, CONTEXT, LLVM)


def test_installed_components_are_skipped(tmp_path: Path) -> None:
    directories = Directories.create(tmp_path / "root")
    asset = _llvm_archive(tmp_path)
    install_assets(directories, CONTEXT, [asset], ToolchainInstallOptions())

    assert install_assets(directories, CONTEXT, [asset], ToolchainInstallOptions()) == []
    assert install_assets(directories, CONTEXT, [asset], ToolchainInstallOptions(extract=True)) == [LLVM]


def test_extract_disabled(tmp_path: Path) -> None:
    directories = Directories.create(tmp_path / "root")

    installed = install_assets(directories, CONTEXT, [_llvm_archive(tmp_path)], ToolchainInstallOptions(extract=False))

    assert installed == []
    assert not directories.manifest_path(CONTEXT, LLVM).exists()


def test_mold_tree_is_relocated(tmp_path: Path) -> None:
    directories = Directories.create(tmp_path / "root")
    archive = _archive(
        tmp_path / "downloads" / "mold.tar.gz",
        {"mold-2.4.0-x86_64-linux/bin/mold": b"\x7fELF"},
        mode="w:gz",
    )
    asset = DownloadedAsset(ComponentAsset(MOLD, "https://example.com/mold.tar.gz"), archive)

    assert not is_installed(directories, CONTEXT, MOLD)
    install_assets(directories, CONTEXT, [asset], ToolchainInstallOptions())

    target = directories.trees / "mold-2.4.0" / "x86_64-linux-gnu"
    assert (target / "bin" / "mold").read_bytes() == b"\x7fELF"
    assert not (directories.trees / "mold-2.4.0-x86_64-linux").exists()
    assert is_installed(directories, CONTEXT, MOLD)

    install_assets(directories, CONTEXT, [asset], ToolchainInstallOptions(extract=True))
    assert (target / "bin" / "mold").is_file()


def test_corrupt_archive_raises(tmp_path: Path) -> None:
    archive = tmp_path / "broken.tar.xz"
    archive.write_bytes(b"not an archive")

    with pytest.raises(ArchiveExtractError):
        extract_archive(archive, tmp_path / "out")


def test_mold_component_kind() -> None:
    assert MOLD.kind is ComponentKind.TOOL_MOLD
