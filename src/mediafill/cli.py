"""CLI interface for mediafill.

Developer tool for looking up file URLs and rewriting rich text through the
resource directory.
"""

import asyncio
import logging
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import cast

import click

from mediafill.config import Config, DirectoryConfig
from mediafill.core.binding import Ref, Rich
from mediafill.core.filler import Filler
from mediafill.core.resource import ResourceInfo
from mediafill.directory import DirectoryResolver, create_resolver


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: auto-discover mediafill.toml)",
)
@click.option(
    "--base-url",
    default=None,
    help="Resource directory base URL (overrides config)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    base_url: str | None,
    verbose: bool,
) -> None:
    """mediafill - resolve media file IDs into delivery URLs."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        config = Config.load(config_path)
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    ctx.obj = config.with_overrides(base_url=base_url)


@cli.command()
@click.argument("file_ids", nargs=-1, required=True)
@click.option(
    "--variant",
    default=None,
    help="Print this variant's URL instead of the primary URL",
)
@click.pass_obj
def resolve(config: Config, file_ids: tuple[str, ...], variant: str | None) -> None:
    """Look up delivery URLs for FILE_IDS with one batch request."""
    directory = _require_directory(config)
    ids = list(dict.fromkeys(file_id for file_id in file_ids if file_id))

    try:
        resources = asyncio.run(_resolve(directory, ids))
    except Exception as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    for file_id in ids:
        info = resources.get(file_id)
        if info is None:
            click.echo(f"{file_id}\tFAILED: not found")
        elif not info.success:
            click.echo(f"{file_id}\tFAILED: {info.error or 'unknown error'}")
        else:
            click.echo(f"{file_id}\t{info.variant(variant) if variant else info.url}")


@cli.command()
@click.argument("source_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the result to this file instead of stdout",
)
@click.option(
    "--variant",
    default=None,
    help="Rewrite with this variant's URL (overrides config)",
)
@click.pass_obj
def render(
    config: Config,
    source_file: Path,
    output: Path | None,
    variant: str | None,
) -> None:
    """Rewrite file ID markers in SOURCE_FILE with fresh URLs."""
    directory = _require_directory(config)
    config = config.with_overrides(variant=variant)

    try:
        text = source_file.read_text(encoding="utf-8")
        rendered = asyncio.run(_render(config, directory, text))
    except Exception as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    if output is None:
        click.echo(rendered, nl=False)
    else:
        output.write_text(rendered, encoding="utf-8")
        click.echo(f"Wrote {output}")


async def _resolve(directory: DirectoryConfig, ids: list[str]) -> Mapping[str, ResourceInfo]:
    resolver = create_resolver(directory)
    try:
        return await resolver.resolve(ids)
    finally:
        await resolver.client.client.aclose()


async def _render(config: Config, directory: DirectoryConfig, text: str) -> str:
    resolver: DirectoryResolver = create_resolver(directory)
    filler = Filler.from_config(config, resolver)
    document = {"text": text}
    ref = Ref(document, "text")
    try:
        await filler.fill(
            Rich(
                ref,
                ref,
                rewriter=config.richtext.create_rewriter(),
                variant=config.richtext.variant,
            )
        )
    finally:
        await resolver.client.client.aclose()
    return document["text"]


def _require_directory(config: Config) -> DirectoryConfig:
    """Get directory config or exit with error.

    Raises:
        SystemExit: If no directory base_url is configured
    """
    if config.directory is None:
        click.echo(
            click.style(
                "Error: directory base_url required (via --base-url or config)",
                fg="red",
            ),
            err=True,
        )
        click.echo("\nAdd the following to your mediafill.toml:")
        click.echo("\n[directory]")
        click.echo('base_url = "http://resource-server:8000"')
        sys.exit(1)
    return cast(DirectoryConfig, config.directory)  # narrowing after sys.exit
