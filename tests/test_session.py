from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from llvmup.directories import Directories
from llvmup.errors import (
    AnalysisNotPerformedForComponentError,
    ComponentNotLoadedError,
    ComponentNotRegisteredError,
    ToolchainNotRegisteredError,
)
from llvmup.session import Llvmup
from llvmup.toolchain.component import CLANG, LLVM, MLIR
from llvmup.toolchain.context import ToolchainContext, ToolchainRelease, ToolchainRevision, ToolchainVariant
from llvmup.toolchain.platform import ToolchainPlatform, ToolchainSys
from llvmup.toolchain.toolchain import Toolchain

FIXTURES = Path(__file__).parent / "fixtures" / "manifests"
CONTEXT = ToolchainContext(
    ToolchainVariant.LLVMORG, ToolchainRelease(17, 0, 6), ToolchainRevision(None), ToolchainPlatform.X86_64_LINUX_GNU
)


def _session(tmp_path: Path) -> tuple[Llvmup, str]:
    directories = Directories.create(tmp_path / "root")
    for component in (LLVM, CLANG):
        target = directories.manifest_path(CONTEXT, component)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(FIXTURES / f"{component}.json", target)
    session = Llvmup(directories)
    handle = session.register_toolchain(Toolchain(CONTEXT, frozenset({LLVM, CLANG})))
    return session, handle


def test_unknown_handle(tmp_path: Path) -> None:
    session, _ = _session(tmp_path)

    with pytest.raises(ToolchainNotRegisteredError):
        session.toolchain_components("0000")


def test_register_is_idempotent(tmp_path: Path) -> None:
    session, handle = _session(tmp_path)

    assert session.register_toolchain(Toolchain(CONTEXT, frozenset({CLANG, LLVM}))) == handle
    assert session.toolchain_components(handle) == [LLVM, CLANG]


def test_load_rejects_unregistered_component(tmp_path: Path) -> None:
    session, handle = _session(tmp_path)

    with pytest.raises(ComponentNotRegisteredError) as excinfo:
        session.load_toolchain_components(handle, [LLVM, MLIR])

    assert excinfo.value.component == MLIR


def test_load_reads_each_manifest_once(tmp_path: Path) -> None:
    session, handle = _session(tmp_path)

    texts = session.load_toolchain_components(handle, [CLANG, LLVM, CLANG])

    assert list(texts) == [CLANG, LLVM]
    assert texts[LLVM] == (FIXTURES / "llvm.json").read_text(encoding="utf-8")


def test_end_to_end_generation(tmp_path: Path) -> None:
    session, handle = _session(tmp_path)
    components = session.toolchain_components(handle)

    texts = session.load_toolchain_components(handle, components)
    manifests = session.load_toolchain_component_manifests(components, texts)
    analysis = session.analysis(handle, components, manifests)
    generator = session.generator(CONTEXT, analysis, [LLVM], {LLVM: ["llvm-sys"]}, system=ToolchainSys.LINUX)
    config = generator.generate_cargo_config()

    assert list(manifests) == [LLVM, CLANG]
    assert analysis.handle == handle
    assert config.cargo_features["LLVMDemangle"] == ["llvm-sys/LLVMDemangle"]
    assert "clangLex" in config.cargo_features


def test_parsing_only_keeps_requested_components(tmp_path: Path) -> None:
    session, handle = _session(tmp_path)
    texts = session.load_toolchain_components(handle, [LLVM, CLANG])

    manifests = session.load_toolchain_component_manifests([LLVM], texts)

    assert list(manifests) == [LLVM]
    with pytest.raises(ComponentNotLoadedError):
        session.analysis(handle, [LLVM, CLANG], manifests)


def test_generator_requires_analysed_crate_components(tmp_path: Path) -> None:
    session, handle = _session(tmp_path)
    texts = session.load_toolchain_components(handle, [LLVM, CLANG])
    manifests = session.load_toolchain_component_manifests([LLVM, CLANG], texts)
    analysis = session.analysis(handle, [LLVM, CLANG], manifests)

    with pytest.raises(AnalysisNotPerformedForComponentError) as excinfo:
        session.generator(CONTEXT, analysis, [LLVM, MLIR])

    assert excinfo.value.component == MLIR


def test_missing_manifest_file_is_not_loaded(tmp_path: Path) -> None:
    session, handle = _session(tmp_path)
    session.directories.manifest_path(CONTEXT, CLANG).unlink()

    with pytest.raises(ComponentNotLoadedError) as excinfo:
        session.load_toolchain_components(handle, [LLVM, CLANG])

    assert excinfo.value.component == CLANG
