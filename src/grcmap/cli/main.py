"""grcmap - framework ingestion and control mapping CLI."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from ..core.errors import FrameworkValidationError, GrcMapError
from ..ingest.parser import SUPPORTED_FORMATS

console = Console()
err_console = Console(stderr=True)

FORMAT_CHOICE = click.Choice(list(SUPPORTED_FORMATS), case_sensitive=False)


def _load_config(ctx: click.Context, overrides: Optional[dict] = None) -> dict:
    from ..core.config import get_effective_config

    obj = ctx.obj or {}
    project = obj.get("project")
    config_file = obj.get("config_file")
    return get_effective_config(
        project_path=Path(project) if project else None,
        config_file=Path(config_file) if config_file else None,
        cli_overrides=overrides,
    )


def _ai_overrides(ai_provider: Optional[str], ai_model: Optional[str]) -> dict:
    if not ai_provider and not ai_model:
        return {}
    ai: dict = {}
    if ai_provider:
        ai["provider"] = ai_provider
    if ai_model:
        ai[ai_provider or "anthropic"] = {"model": ai_model}
    return {"ai": ai}


def _fail(message: str) -> None:
    err_console.print(f"  [red]ERROR[/red] {message}")
    sys.exit(1)


def _catalog_lookup(config: dict, name: str):
    """Resolve a framework from the built-in catalog, then any configured extra dirs."""
    from ..compliance.catalog import get_framework

    framework = get_framework(name)
    for extra in config.get("catalog", {}).get("extra_dirs") or []:
        if framework is not None:
            break
        framework = get_framework(name, Path(extra))
    return framework


def _require_valid(framework) -> None:
    from ..ingest.validator import validate_framework

    result = validate_framework(framework)
    if not result.is_valid:
        raise FrameworkValidationError(result)


def _write_or_print(payload: str, output: Optional[str]) -> None:
    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload, encoding="utf-8")
        err_console.print(f"  [green]Wrote[/green] {path}")
    else:
        click.echo(payload)


@click.group()
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False), help="Config YAML file")
@click.option("--project", "-p", type=click.Path(exists=True, file_okay=False), help="Project dir with .grcmap/config.yaml")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], project: Optional[str]) -> None:
    """grcmap - ingest compliance frameworks and map controls between them."""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["project"] = project


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "-f", "fmt", type=FORMAT_CHOICE, required=True)
@click.option("--name", type=str, help="Override the framework name")
@click.option("--version", "fw_version", type=str, help="Override the framework version")
@click.option("--description", type=str, help="Override the framework description")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the ingestion result as JSON")
@click.option("--ai-provider", type=click.Choice(["anthropic", "openai", "ollama"]))
@click.option("--ai-model", type=str, help="Model override")
@click.pass_context
def ingest(
    ctx: click.Context,
    file: str,
    fmt: str,
    name: Optional[str],
    fw_version: Optional[str],
    description: Optional[str],
    output: Optional[str],
    ai_provider: Optional[str],
    ai_model: Optional[str],
) -> None:
    """Parse, validate and summarize a framework document."""
    from ..ingest.pipeline import ingest_framework

    try:
        config = _load_config(ctx, _ai_overrides(ai_provider, ai_model))
        result = ingest_framework(
            Path(file).read_bytes(),
            fmt,
            name=name,
            version=fw_version,
            description=description,
            config=config,
        )
    except GrcMapError as e:
        _fail(str(e))
        return

    table = Table(title=f"{result.framework.name} v{result.framework.version}")
    table.add_column("Category")
    table.add_column("Controls", justify="right")
    for category in result.categories:
        table.add_row(category.id, str(category.control_count))
    err_console.print(table)
    err_console.print(f"  Framework ID: [white]{result.framework_id}[/white]")

    if output:
        _write_or_print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False), output)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "-f", "fmt", type=FORMAT_CHOICE, required=True)
@click.option("--strict", is_flag=True, help="Also report duplicate control IDs")
@click.pass_context
def validate(ctx: click.Context, file: str, fmt: str, strict: bool) -> None:
    """Parse a framework document and report structural problems."""
    from ..ingest.parser import parse_framework_document
    from ..ingest.validator import validate_framework

    try:
        framework = parse_framework_document(Path(file).read_bytes(), fmt, config=_load_config(ctx))
    except GrcMapError as e:
        _fail(str(e))
        return

    result = validate_framework(framework, strict=strict)
    if result.is_valid:
        console.print(f"  [green]VALID[/green] {framework.name}: {len(framework.controls)} controls")
        return

    console.print(f"  [red]INVALID[/red] {framework.name or '(unnamed)'}: {len(result.errors)} error(s)")
    for error in result.errors:
        console.print(f"    - {error}")
    sys.exit(1)


@cli.command(name="map")
@click.argument("source_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "-f", "fmt", type=FORMAT_CHOICE, required=True)
@click.option("--target", "-t", type=str, help="Catalog framework to map against")
@click.option("--target-file", type=click.Path(exists=True, dir_okay=False), help="Map against another document instead")
@click.option("--target-format", type=FORMAT_CHOICE, help="Format of --target-file")
@click.option("--threshold", type=float, help="Minimum similarity for a match")
@click.option("--include-unmatched", is_flag=True, help="Emit zero-confidence entries for unmatched controls")
@click.option("--output-format", "-F", type=click.Choice(["markdown", "json"]), default="markdown")
@click.option("--output", "-o", type=click.Path(dir_okay=False))
@click.pass_context
def map_command(
    ctx: click.Context,
    source_file: str,
    fmt: str,
    target: Optional[str],
    target_file: Optional[str],
    target_format: Optional[str],
    threshold: Optional[float],
    include_unmatched: bool,
    output_format: str,
    output: Optional[str],
) -> None:
    """Map the controls of a framework document onto a target framework."""
    from ..compliance.compatibility import get_framework_compatibility, resolve_table_name
    from ..compliance.mapper import MappingSettings, map_frameworks
    from ..formatters.report import mapping_to_dict, render_mapping_markdown
    from ..ingest.parser import parse_framework_document

    mapping_overrides: dict = {}
    if threshold is not None:
        mapping_overrides["threshold"] = threshold
    if include_unmatched:
        mapping_overrides["include_unmatched"] = True

    try:
        config = _load_config(ctx, {"mapping": mapping_overrides} if mapping_overrides else None)
        source = parse_framework_document(Path(source_file).read_bytes(), fmt, config=config)
        _require_valid(source)
        if target_file:
            if not target_format:
                _fail("--target-format is required with --target-file")
                return
            target_fw = parse_framework_document(Path(target_file).read_bytes(), target_format, config=config)
            _require_valid(target_fw)
        else:
            target_name = target or config.get("catalog", {}).get("default_framework", "ISO 27001:2022")
            target_fw = _catalog_lookup(config, target_name)
            if target_fw is None:
                _fail(f"Unknown catalog framework: {target_name}")
                return
    except GrcMapError as e:
        _fail(str(e))
        return

    mapping = map_frameworks(source, target_fw, MappingSettings.from_config(config))

    if output_format == "json":
        payload = json.dumps(mapping_to_dict(mapping), indent=2, ensure_ascii=False)
    else:
        compatibility = None
        source_key = resolve_table_name(source.name)
        target_key = resolve_table_name(target_fw.name)
        if source_key and target_key:
            compatibility = get_framework_compatibility(source_key, target_key)
        payload = render_mapping_markdown(mapping, compatibility=compatibility, source_total=len(source.controls))

    _write_or_print(payload, output)


@cli.group()
def catalog() -> None:
    """Query the built-in reference frameworks."""


@catalog.command(name="list")
def catalog_list() -> None:
    from ..compliance.catalog import list_frameworks

    for name in list_frameworks():
        click.echo(name)


@catalog.command(name="show")
@click.argument("name")
@click.option("--category", "-c", type=str, help="Only show one category")
def catalog_show(name: str, category: Optional[str]) -> None:
    """Show the controls of a framework."""
    from ..compliance.catalog import get_framework

    framework = get_framework(name)
    if framework is None:
        _fail(f"Unknown catalog framework: {name}")
        return

    controls = [c for c in framework.controls if not category or c.category == category]
    table = Table(title=f"{framework.name} ({len(controls)} controls)")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Criticality")
    for control in controls:
        table.add_row(control.id, control.title, control.control_type, control.criticality or "")
    console.print(table)


@catalog.command(name="search")
@click.argument("keyword")
@click.option("--framework", "framework_name", default="ISO 27001:2022", show_default=True)
def catalog_search(keyword: str, framework_name: str) -> None:
    from ..compliance.catalog import search_controls

    for control in search_controls(keyword, framework_name):
        click.echo(f"{control.id}\t{control.title}")


@catalog.command(name="stats")
@click.option("--framework", "framework_name", default="ISO 27001:2022", show_default=True)
def catalog_stats(framework_name: str) -> None:
    from ..compliance.catalog import get_framework_stats

    click.echo(json.dumps(get_framework_stats(framework_name).model_dump(), indent=2))


@cli.command()
@click.argument("source")
@click.argument("target")
def compat(source: str, target: str) -> None:
    """Print the historical compatibility prior between two frameworks."""
    from ..compliance.compatibility import get_framework_compatibility

    click.echo(f"{get_framework_compatibility(source, target):.2f}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
