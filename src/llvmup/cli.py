from __future__ import annotations

from pathlib import Path

import typer

from llvmup.config import DEFAULT_CONFIG_NAME, LlvmupConfig, ensure_config
from llvmup.errors import ConfigError, LlvmupError
from llvmup.log import setup_logging
from llvmup.pipeline import run_analysis, run_generate, run_install

app = typer.Typer(help="llvmup: LLVM/Clang toolchains and Cargo link configuration")


def _resolve(base: Path, path: Path) -> Path:
    return (base / path).resolve() if not path.is_absolute() else path


def _fail(exc: LlvmupError) -> None:
    typer.echo(f"[llvmup] error: {exc}", err=True)
    raise typer.Exit(code=1)


def _load_config(manifest_dir: Path, config: Path) -> LlvmupConfig:
    try:
        loaded = LlvmupConfig.load(_resolve(manifest_dir, config))
        try:
            setup_logging(loaded.logging.mode, loaded.logging.level, loaded.logging.file_path)
        except (OSError, ValueError) as exc:
            raise ConfigError("logging.file", loaded.logging.file, str(exc)) from exc
    except LlvmupError as exc:
        _fail(exc)
    return loaded


@app.command()
def init(
    manifest_dir: Path = typer.Option(Path("."), help="Crate directory holding Cargo.toml"),
    config: Path = typer.Option(Path(DEFAULT_CONFIG_NAME), help="Config file path"),
    force: bool = typer.Option(False, help="Overwrite existing config"),
) -> None:
    manifest_dir = manifest_dir.resolve()
    config_path = _resolve(manifest_dir, config)
    written = ensure_config(config_path, force=force)
    if written:
        typer.echo(f"[llvmup] initialized config at {config_path}")
    else:
        typer.echo(f"[llvmup] config already exists at {config_path}")


@app.command()
def install(
    manifest_dir: Path = typer.Option(Path("."), help="Crate directory holding Cargo.toml"),
    config: Path = typer.Option(Path(DEFAULT_CONFIG_NAME), help="Config file path"),
) -> None:
    manifest_dir = manifest_dir.resolve()
    settings = _load_config(manifest_dir, config)
    try:
        installed = run_install(settings)
    except LlvmupError as exc:
        _fail(exc)
        return

    typer.echo("[llvmup] install complete")
    typer.echo(f"- root: {settings.directories().root}")
    typer.echo(f"- extracted: {', '.join(str(component) for component in installed) or 'none'}")


@app.command()
def analyze(
    manifest_dir: Path = typer.Option(Path("."), help="Crate directory holding Cargo.toml"),
    config: Path = typer.Option(Path(DEFAULT_CONFIG_NAME), help="Config file path"),
    output: Path | None = typer.Option(None, help="Write the dependency graph as JSON"),
    links: list[str] = typer.Option([], "--links", help="Print the link directives for these features"),
) -> None:
    manifest_dir = manifest_dir.resolve()
    settings = _load_config(manifest_dir, config)
    output_path = _resolve(manifest_dir, output) if output is not None else None
    try:
        result = run_analysis(settings, output=output_path)
        summary = result.analysis.summary()

        typer.echo("[llvmup] analysis complete")
        for key in ("targets", "nodes", "edges", "external_targets", "link_groups", "link_cycles"):
            typer.echo(f"- {key.replace('_', ' ')}: {summary[key]}")
        if output_path is not None:
            typer.echo(f"- graph: {output_path}")

        if links:
            context = result.toolchain.context
            generator = result.session.generator(
                context,
                result.analysis,
                [],
                settings.crate_dependency_map(context),
            )
            for line in generator.generate_cargo_config().directive_stream(links):
                typer.echo(line)
    except LlvmupError as exc:
        _fail(exc)


@app.command()
def generate(
    manifest_dir: Path = typer.Option(Path("."), help="Crate directory holding Cargo.toml"),
    config: Path = typer.Option(Path(DEFAULT_CONFIG_NAME), help="Config file path"),
) -> None:
    manifest_dir = manifest_dir.resolve()
    settings = _load_config(manifest_dir, config)
    try:
        result = run_generate(settings, manifest_dir)
    except LlvmupError as exc:
        _fail(exc)
        return

    typer.echo("[llvmup] generate complete")
    typer.echo(f"- features: {len(result.cargo.cargo_features)}")
    typer.echo(f"- link directories: {len(result.cargo.build_link_dirs)}")
    typer.echo(f"- build script: {result.outputs['build_script']}")


if __name__ == "__main__":
    app()
