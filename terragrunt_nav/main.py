"""
terragrunt-nav command line host.

Exposes the link and definition providers so the navigator can be
driven from a shell or an editor task.
"""

import logging
import os
import sys

import click

from . import __version__
from .config import Settings
from .navigator import Navigator, Workspace
from .utils import setup_logging

logger = logging.getLogger(__name__)


def _read(path: str) -> str:
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def _navigator(ctx: click.Context) -> Navigator:
    settings: Settings = ctx.obj["settings"]
    return Navigator.from_settings(
        settings,
        workspace=ctx.obj["workspace"],
        notify=lambda message: click.echo(message, err=True),
    )


@click.group()
@click.version_option(__version__)
@click.option(
    "--workspace", "-w",
    multiple=True,
    type=click.Path(exists=True, file_okay=False),
    help="Open workspace folder (repeatable, defaults to the current directory)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--log-file", is_flag=True, help="Also write a debug log file")
@click.pass_context
def cli(ctx: click.Context, workspace, verbose: bool, log_file: bool):
    """Resolve Terragrunt/Terraform links, hovers and definitions."""
    setup_logging(log_level="DEBUG" if verbose else "WARNING", log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("settings", Settings())
    ctx.obj["workspace"] = Workspace(list(workspace) or [os.getcwd()])


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--hovers", is_flag=True, help="Also print key and value annotations")
@click.pass_context
def links(ctx: click.Context, file: str, hovers: bool):
    """List the navigable links in FILE."""
    path = os.path.abspath(file)
    result = _navigator(ctx).provide_document_links(path, _read(path))

    for link in result.links:
        r = link.range
        click.echo(f"{r.start_line + 1}:{r.start_col + 1}-{r.end_col + 1}\t{link.target}")

    if hovers:
        for annotation in result.key_annotations + result.value_annotations:
            r = annotation.range
            click.echo(f"{r.start_line + 1}:{r.start_col + 1}-{r.end_col + 1}")
            click.echo(annotation.content)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("line", type=click.IntRange(min=1))
@click.pass_context
def goto(ctx: click.Context, file: str, line: int):
    """Print the file that the locator on LINE (1-based) of FILE points to."""
    path = os.path.abspath(file)
    target = _navigator(ctx).provide_definition(path, _read(path), line - 1)
    if target is None:
        click.echo(f"No navigable reference on line {line}", err=True)
        ctx.exit(1)
    click.echo(target)


@cli.command("save-inputs")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def save_inputs(ctx: click.Context, file: str):
    """Write the inputs of FILE to input.json beside it."""
    written = _navigator(ctx).save_input_json(os.path.abspath(file))
    if written is None:
        ctx.exit(1)


@cli.command()
@click.pass_context
def settings(ctx: click.Context):
    """Edit cache size and feature toggles."""
    _run_dialog(ctx, "settings")


@cli.command()
@click.pass_context
def replacements(ctx: click.Context):
    """Edit the path replacement strings."""
    _run_dialog(ctx, "replacements")


def _run_dialog(ctx: click.Context, which: str):
    from PySide6.QtWidgets import QApplication

    from .ui import ReplacementRulesDialog, SettingsDialog

    app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setApplicationName("terragrunt-nav")

    store: Settings = ctx.obj["settings"]
    dialog = SettingsDialog(store) if which == "settings" else ReplacementRulesDialog(store)
    if dialog.exec():
        logger.info(f"Settings updated: cache size {store.get('max_cache_size')}, "
                    f"{len(store.get_replacement_rules())} replacement rule(s)")


def main():
    """Main entry point for terragrunt-nav."""
    return cli(obj={})


if __name__ == "__main__":
    sys.exit(main())
