"""Tarp CLI - tarp command."""

from pathlib import Path
from typing import Any

import click

from tarp.config.loader import load_config
from tarp.config.models import TarpConfig
from tarp.core.errors import ConfigError, TarpError
from tarp.core.logging import configure_logging, get_logger, run_scope
from tarp.report.assembler import RenderContext, ReportAssembler
from tarp.report.html import write_report

log = get_logger(__name__)


@click.command()
@click.version_option(version="0.1.0", prog_name="tarp")
@click.argument(
    "profiles",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), help="The generated coverage report"
)
@click.option("--title", help="Report title")
@click.option(
    "--resolver",
    "strategy",
    type=click.Choice(["auto", "go-list", "module"]),
    help="How coverage units are mapped to packages and files",
)
@click.option(
    "--module-root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory holding go.mod (module resolver)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: ./.tarp.yaml)",
)
@click.option("--summary", is_flag=True, help="Print the coverage tree")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(
    profiles: tuple[Path, ...],
    output: Path | None,
    title: str | None,
    strategy: str | None,
    module_root: Path | None,
    config_path: Path | None,
    summary: bool,
    verbose: bool,
) -> None:
    """Generate an interactive HTML coverage report from Go coverage profiles.

    PROFILES are files written by 'go test -coverprofile'. Profiles for the
    same file are merged before the report is built.
    """
    overrides: dict[str, dict[str, Any]] = {}
    if output:
        overrides.setdefault("report", {})["output"] = str(output)
    if title:
        overrides.setdefault("report", {})["title"] = title
    if strategy:
        overrides.setdefault("resolve", {})["strategy"] = strategy
    if module_root:
        overrides.setdefault("resolve", {})["module_root"] = str(module_root)
    if verbose:
        overrides["logging"] = {"level": "DEBUG"}

    try:
        config = load_config(config_path=config_path, **overrides)
    except ConfigError as e:
        raise click.ClickException(e.message) from e

    configure_logging(config=config.logging)
    with run_scope():
        try:
            context = _build_report(config, list(profiles))
        except TarpError as e:
            log.error("report_failed", error=e.error_name, **e.details)
            raise click.ClickException(e.message) from e

    if summary:
        click.echo(context.tree.render_text(), nl=False)
    click.echo(f"coverage: {context.tree.root.coverage_str()}% of statements")
    click.echo(f"Report written to {config.report.output}")


def _build_report(config: TarpConfig, profiles: list[Path]) -> RenderContext:
    from tarp.resolve.functions import TreeSitterFunctionExtractor
    from tarp.resolve.packages import make_resolver

    assembler = ReportAssembler(
        make_resolver(config.resolve),
        TreeSitterFunctionExtractor(),
        tab_width=config.report.tab_width,
    )
    context = assembler.assemble_files(profiles)
    write_report(context, Path(config.report.output), config.report.title)
    return context


if __name__ == "__main__":
    cli()
