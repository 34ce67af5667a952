"""Cargo build-script directives and their two renderings.

Link instructions are kept as a small tree (plain directive, feature-gated
block, link group) so they can be written out either as the ``build_llvmup.rs``
module or as the flat ``cargo:...`` line stream a build script would print for
a given set of enabled features.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Union

START_GROUP = "cargo:rustc-link-arg=-Wl,--start-group"
END_GROUP = "cargo:rustc-link-arg=-Wl,--end-group"
INDENT = "    "


@dataclass(frozen=True, slots=True)
class Directive:
    text: str


@dataclass(frozen=True, slots=True)
class LinkGroup:
    members: tuple[Directive, ...]


@dataclass(frozen=True, slots=True)
class FeatureGated:
    features: tuple[str, ...]
    body: tuple[Directive | LinkGroup, ...]


Item = Union[Directive, LinkGroup, FeatureGated]


def link_lib(linkage: str, name: str, verbatim: bool = False) -> Directive:
    modifiers = ":+verbatim" if verbatim else ""
    return Directive(f"cargo:rustc-link-lib={linkage}{modifiers}={name}")


def link_search(path: str) -> Directive:
    return Directive(f"cargo:rustc-link-search=native={path}")


def directive_lines(items: Iterable[Item], enabled: Iterable[str] | None = None) -> list[str]:
    """Flatten items into directive lines; ``enabled=None`` treats every feature as on."""
    active = None if enabled is None else set(enabled)
    return list(_lines(items, active))


def _lines(items: Iterable[Item], active: set[str] | None) -> Iterator[str]:
    for item in items:
        if isinstance(item, Directive):
            yield item.text
        elif isinstance(item, LinkGroup):
            yield START_GROUP
            yield from (member.text for member in item.members)
            yield END_GROUP
        elif active is None or active.intersection(item.features):
            yield from _lines(item.body, active)


def _rust_str(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _println(directive: Directive) -> str:
    # println! treats braces as format placeholders
    text = directive.text.replace("{", "{{").replace("}", "}}")
    return f"println!({_rust_str(text)});"


def cfg_attribute(features: tuple[str, ...]) -> str:
    if len(features) == 1:
        return f"#[cfg(feature = {_rust_str(features[0])})]"
    members = ", ".join(f"feature = {_rust_str(feature)}" for feature in features)
    return f"#[cfg(any({members}))]"


def render_rust_items(items: Iterable[Item], depth: int = 1) -> list[str]:
    pad = INDENT * depth
    lines: list[str] = []
    for item in items:
        if isinstance(item, Directive):
            lines.append(pad + _println(item))
        elif isinstance(item, LinkGroup):
            lines.append(pad + _println(Directive(START_GROUP)))
            lines.extend(pad + _println(member) for member in item.members)
            lines.append(pad + _println(Directive(END_GROUP)))
        else:
            lines.append(pad + cfg_attribute(item.features))
            if len(item.body) == 1 and isinstance(item.body[0], Directive):
                lines.append(pad + _println(item.body[0]))
            else:
                lines.append(pad + "{")
                lines.extend(render_rust_items(item.body, depth + 1))
                lines.append(pad + "}")
    return lines


def render_build_script(searches: Iterable[Directive], link_items: Iterable[Item]) -> str:
    lines = [
        "// @generated by llvmup; do not edit.",
        "#![allow(clippy::all)]",
        "#![allow(clippy::pedantic)]",
        "",
        "#[allow(unused)]",
        "pub fn llvmup_build() {",
        INDENT + "rustc_link_searches();",
        INDENT + "rustc_link_libs();",
        "}",
        "",
        "#[allow(unused)]",
        "pub fn rustc_link_searches() {",
        *render_rust_items(searches),
        "}",
        "",
        "#[allow(unused)]",
        "pub fn rustc_link_libs() {",
        *render_rust_items(link_items),
        "}",
    ]
    return "\n".join(lines) + "\n"
