from __future__ import annotations

import json
from pathlib import Path

import pytest

from llvmup.analysis.builder import build_analysis
from llvmup.analysis.node import EXECUTABLE, INTERFACE, DependencyNode, NodeKind
from llvmup.directories import Directories
from llvmup.errors import LibraryParentDirNotInLinkDirectoriesError, TargetFileNameNotFoundError
from llvmup.generation.cargo import ToolchainConfigGenerator, link_instruction
from llvmup.generation.directives import END_GROUP, START_GROUP, Directive, FeatureGated, LinkGroup
from llvmup.manifest import parse_manifest
from llvmup.toolchain.component import CLANG, LLVM
from llvmup.toolchain.context import ToolchainContext, ToolchainRelease, ToolchainRevision, ToolchainVariant
from llvmup.toolchain.platform import ToolchainPlatform, ToolchainSys

FIXTURES = Path(__file__).parent / "fixtures" / "manifests"
LINUX = ToolchainSys.LINUX


def _context() -> ToolchainContext:
    return ToolchainContext(
        variant=ToolchainVariant.LLVMORG,
        release=ToolchainRelease(17, 0, 6),
        revision=ToolchainRevision(None),
        platform=ToolchainPlatform.X86_64_LINUX_GNU,
    )


def _generator(tmp_path: Path, crate_dependencies=None) -> ToolchainConfigGenerator:
    manifests = {
        LLVM: parse_manifest(LLVM, (FIXTURES / "llvm.json").read_text(encoding="utf-8")),
        CLANG: parse_manifest(CLANG, (FIXTURES / "clang.json").read_text(encoding="utf-8")),
    }
    analysis = build_analysis("h", [LLVM, CLANG], manifests)
    return ToolchainConfigGenerator(
        _context(),
        Directories.create(tmp_path / "root"),
        analysis.external_targets,
        analysis.postorder_sccs(),
        crate_dependencies,
        system=LINUX,
    )


def _lib(name: str, location: str | None, kind: NodeKind | None = None, dirs=("lib",)) -> DependencyNode:
    return DependencyNode(
        name=name,
        kind=kind or NodeKind.static(),
        component=LLVM,
        interface_link_directories=tuple(dirs),
        location=location,
    )


def test_canonical_static_library() -> None:
    directive = link_instruction(_lib("LLVMSupport", "lib/libLLVMSupport.a"), LINUX)

    assert directive == Directive("cargo:rustc-link-lib=static=LLVMSupport")


def test_unexpected_file_name_is_verbatim() -> None:
    node = _lib("LLVM", "lib/libLLVM-17.so", kind=NodeKind.shared())

    assert link_instruction(node, LINUX).text == "cargo:rustc-link-lib=dylib:+verbatim=libLLVM-17.so"


def test_windows_static_library_is_verbatim() -> None:
    node = _lib("LLVMSupport", "lib/LLVMSupport.lib")

    assert link_instruction(node, ToolchainSys.WINDOWS).text == "cargo:rustc-link-lib=static:+verbatim=LLVMSupport.lib"


def test_macos_shared_library_uses_dylib_extension() -> None:
    node = _lib("LTO", "lib/libLTO.dylib", kind=NodeKind.shared())

    assert link_instruction(node, ToolchainSys.MACOS).text == "cargo:rustc-link-lib=dylib=LTO"


def test_parent_directory_must_be_a_link_directory() -> None:
    with pytest.raises(LibraryParentDirNotInLinkDirectoriesError) as excinfo:
        link_instruction(_lib("x", "lib64/libx.a"), LINUX)

    assert excinfo.value.parent == "lib64"
    assert excinfo.value.link_directories == ["lib"]


def test_parent_directory_checked_even_without_link_directories() -> None:
    with pytest.raises(LibraryParentDirNotInLinkDirectoriesError):
        link_instruction(_lib("x", "lib/libx.a", dirs=()), LINUX)


def test_link_directory_comparison_is_path_based() -> None:
    assert link_instruction(_lib("x", "lib/libx.a", dirs=("lib/",)), LINUX).text == "cargo:rustc-link-lib=static=x"


@pytest.mark.parametrize(
    ("location", "expected"),
    [
        ("libx.a", "cargo:rustc-link-lib=static=x"),
        ("x.a", "cargo:rustc-link-lib=static:+verbatim=x.a"),
    ],
)
def test_location_without_parent(location: str, expected: str) -> None:
    assert link_instruction(_lib("x", location, dirs=()), LINUX).text == expected


def test_missing_file_name_raises() -> None:
    with pytest.raises(TargetFileNameNotFoundError):
        link_instruction(_lib("x", "lib/"), LINUX)


def test_system_library_without_location() -> None:
    node = DependencyNode(name="m", kind=NodeKind.shared())

    assert link_instruction(node, LINUX).text == "cargo:rustc-link-lib=dylib=m"


def test_framework_without_location() -> None:
    node = DependencyNode.from_reference("-framework CoreFoundation")

    assert link_instruction(node, ToolchainSys.MACOS).text == "cargo:rustc-link-lib=framework=CoreFoundation"


def test_unlinked_kinds_emit_nothing() -> None:
    assert link_instruction(_lib("clang", "bin/clang", kind=EXECUTABLE, dirs=("bin",)), LINUX) is None
    assert link_instruction(_lib("Headers", None, kind=INTERFACE), LINUX) is None


def test_unknown_host_emits_nothing_for_located_libraries() -> None:
    assert link_instruction(_lib("x", "lib/libx.a"), None) is None


def test_feature_table(tmp_path: Path) -> None:
    config = _generator(tmp_path).generate_cargo_config()

    assert config.cargo_features == {
        "LLVMDemangle": [],
        "LLVMSupport": ["LLVMDemangle"],
        "LLVMCore": ["LLVMBinaryFormat", "LLVMSupport"],
        "LLVMBinaryFormat": ["LLVMCore", "LLVMSupport"],
        "LLVMHeaders": ["LLVMSupport"],
        "clangBasic": ["LLVMCore", "LLVMSupport"],
        "clangLex": ["LLVMSupport", "clangBasic"],
    }
    assert config.build_link_dirs == {"lib"}


def test_external_libraries_never_become_features(tmp_path: Path) -> None:
    config = _generator(tmp_path).generate_cargo_config()

    for name in ("m", "z"):
        assert name not in config.cargo_features
        for implied in config.cargo_features.values():
            assert name not in implied


def test_crate_dependencies_are_forwarded(tmp_path: Path) -> None:
    config = _generator(tmp_path, {LLVM: ["llvm-sys", "inkwell"]}).generate_cargo_config()

    assert config.cargo_features["LLVMSupport"] == ["LLVMDemangle", "llvm-sys/LLVMSupport", "inkwell/LLVMSupport"]
    assert config.cargo_features["clangLex"] == ["LLVMSupport", "clangBasic"]


def test_link_items_follow_groups(tmp_path: Path) -> None:
    items = _generator(tmp_path).generate_cargo_config().build_link_items

    assert items == [
        FeatureGated(("LLVMDemangle",), (Directive("cargo:rustc-link-lib=static=LLVMDemangle"),)),
        FeatureGated(("LLVMSupport",), (Directive("cargo:rustc-link-lib=dylib=m"),)),
        FeatureGated(("LLVMSupport",), (Directive("cargo:rustc-link-lib=dylib=z"),)),
        FeatureGated(("LLVMSupport",), (Directive("cargo:rustc-link-lib=static=LLVMSupport"),)),
        FeatureGated(
            ("LLVMCore", "LLVMBinaryFormat"),
            (
                LinkGroup(
                    (
                        Directive("cargo:rustc-link-lib=static=LLVMCore"),
                        Directive("cargo:rustc-link-lib=static=LLVMBinaryFormat"),
                    )
                ),
            ),
        ),
        FeatureGated(("clangBasic",), (Directive("cargo:rustc-link-lib=static=clangBasic"),)),
        FeatureGated(("clangLex",), (Directive("cargo:rustc-link-lib=static=clangLex"),)),
    ]


def test_directive_stream_for_enabled_features(tmp_path: Path) -> None:
    config = _generator(tmp_path).generate_cargo_config()
    root = tmp_path / "root" / "trees" / "llvmorg-17.0.6" / "x86_64-linux-gnu"

    lines = config.directive_stream(["LLVMBinaryFormat"])

    assert lines == [
        f"cargo:rustc-link-search=native={root / 'lib'}",
        "cargo:rustc-link-lib=static=LLVMDemangle",
        "cargo:rustc-link-lib=dylib=m",
        "cargo:rustc-link-lib=dylib=z",
        "cargo:rustc-link-lib=static=LLVMSupport",
        START_GROUP,
        "cargo:rustc-link-lib=static=LLVMCore",
        "cargo:rustc-link-lib=static=LLVMBinaryFormat",
        END_GROUP,
    ]


def test_directive_stream_with_everything_enabled(tmp_path: Path) -> None:
    lines = _generator(tmp_path).generate_cargo_config().directive_stream()

    assert lines.count(START_GROUP) == 1
    assert lines.index("cargo:rustc-link-lib=static=LLVMSupport") < lines.index(START_GROUP)
    assert lines[-1] == "cargo:rustc-link-lib=static=clangLex"


def test_build_script_rendering(tmp_path: Path) -> None:
    script = _generator(tmp_path).generate_cargo_config().build_script()

    assert "pub fn llvmup_build() {" in script
    assert "pub fn rustc_link_searches() {" in script
    assert "pub fn rustc_link_libs() {" in script
    assert '    #[cfg(feature = "LLVMSupport")]\n    println!("cargo:rustc-link-lib=static=LLVMSupport");' in script
    assert '#[cfg(any(feature = "LLVMCore", feature = "LLVMBinaryFormat"))]' in script
    assert '        println!("cargo:rustc-link-arg=-Wl,--start-group");' in script
    assert script.index("--start-group") < script.index("static=LLVMBinaryFormat") < script.index("--end-group")
    assert "LLVMHeaders" not in script


def test_empty_group_is_ignored(tmp_path: Path) -> None:
    generator = _generator(tmp_path)
    items: list = []

    generator.compute_link_items([], items)

    assert items == []


def _generator_for(tmp_path: Path, targets: dict) -> ToolchainConfigGenerator:
    manifests = {LLVM: parse_manifest(LLVM, json.dumps({"cmakeProperties": {"IMPORTED_TARGETS": targets}}))}
    analysis = build_analysis("h", [LLVM], manifests)
    return ToolchainConfigGenerator(
        _context(),
        Directories.create(tmp_path / "root"),
        analysis.external_targets,
        analysis.postorder_sccs(),
        system=LINUX,
    )


def _static_target(name: str, libs=()) -> dict:
    return {
        "llvmupTargetKind": "inherent",
        "IMPORTED": "TRUE",
        "NAME": name,
        "SYSTEM": "FALSE",
        "TYPE": "STATIC_LIBRARY",
        "INTERFACE_LINK_DIRECTORIES": ["lib"],
        "INTERFACE_LINK_LIBRARIES": list(libs),
        "LOCATION": f"lib/lib{name}.a",
    }


def test_system_library_links_with_its_dependent(tmp_path: Path) -> None:
    config = _generator_for(tmp_path, {"lib": _static_target("lib", ["m"])}).generate_cargo_config()

    assert config.cargo_features == {"lib": []}
    assert "cargo:rustc-link-lib=dylib=m" in config.directive_stream(["lib"])
    assert "cargo:rustc-link-lib=dylib=m" not in config.directive_stream([])
    assert '    #[cfg(feature = "lib")]\n    println!("cargo:rustc-link-lib=dylib=m");' in config.build_script()


def test_shared_external_library_is_gated_on_every_dependent(tmp_path: Path) -> None:
    targets = {"a": _static_target("a", ["pthread"]), "b": _static_target("b", ["$<LINK_ONLY:pthread>"])}
    config = _generator_for(tmp_path, targets).generate_cargo_config()

    pthread = Directive("cargo:rustc-link-lib=dylib=pthread")
    gates = [item.features for item in config.build_link_items if item.body == (pthread,)]
    assert [sorted(gate) for gate in gates] == [["a", "b"]]
    assert "cargo:rustc-link-lib=dylib=pthread" in config.directive_stream(["b"])
    assert "cargo:rustc-link-lib=dylib=pthread" not in config.directive_stream(["pthread"])


def test_enabled_closure_follows_implied_features(tmp_path: Path) -> None:
    config = _generator(tmp_path, {LLVM: ["llvm-sys"]}).generate_cargo_config()

    assert config.enabled_closure(["clangLex"]) == {
        "clangLex",
        "clangBasic",
        "LLVMCore",
        "LLVMBinaryFormat",
        "LLVMSupport",
        "LLVMDemangle",
    }
    assert config.enabled_closure(["LLVMDemangle"]) == {"LLVMDemangle"}
    assert config.enabled_closure([]) == set()
