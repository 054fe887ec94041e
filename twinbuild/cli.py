"""
CLI interface for twinbuild.

Provides the full pipeline (no subcommand) plus the `lint` and `build`
subcommands. Flags may be given before or after the subcommand:

    twinbuild --flow
    twinbuild --force lint
    twinbuild build --dbg
"""

from pathlib import Path

import click
from click.core import ParameterSource

from twinbuild import __version__
from twinbuild.config import PipelineOptions, load_config
from twinbuild.errors import ConfigError
from twinbuild.pipeline import Pipeline
from twinbuild.utils import (
    console,
    format_duration,
    print_error,
    print_info,
    print_success,
    print_warning,
    setup_logging,
)

FLAG_NAMES = ("esm", "build", "dbg", "flow", "force", "warnings", "config", "verbose")


def pipeline_options(func):
    """Attach the shared build flags to a command."""
    options = [
        click.option("--esm/--no-esm", default=True, help="Generate bridge files (default: on)"),
        click.option(
            "--build/--no-build",
            default=True,
            help="Compile sources; --no-build copies or strips them instead",
        ),
        click.option("--dbg", is_flag=True, help="Build the example source root instead of src"),
        click.option("--flow", is_flag=True, help="Type check (and strip types with --no-build)"),
        click.option("--force", is_flag=True, help="Purge caches and previous output first"),
        click.option("--warnings", is_flag=True, help="Report lint warnings, not only errors"),
        click.option(
            "--config",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            help="Configuration file (default: ./twinbuild.yaml)",
        ),
        click.option("--verbose", is_flag=True, help="Enable debug logging"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _merge_flags(ctx: click.Context, flags: dict) -> dict:
    """Flags given on the subcommand win over those given on the group."""
    merged = dict(ctx.obj or {})
    for name in FLAG_NAMES:
        if ctx.get_parameter_source(name) in (ParameterSource.COMMANDLINE, ParameterSource.ENVIRONMENT):
            merged[name] = flags[name]
        elif name not in merged:
            merged[name] = flags[name]
    return merged


def _fatal(message: str) -> None:
    console.print(f"[red]fatal[/red]: [bold]{message}[/bold] [dim](null)[/dim] at [green]twinbuild[/green]")
    raise SystemExit(1)


def _execute(command: str, flags: dict) -> None:
    """Validate flags, load configuration and run one pipeline command."""
    options = PipelineOptions.from_flags(
        esm=flags["esm"],
        build=flags["build"],
        dbg=flags["dbg"],
        flow=flags["flow"],
        force=flags["force"],
        warnings=flags["warnings"],
    )

    if command == "pipeline":
        try:
            options.validate()
        except ConfigError as e:
            _fatal(str(e))

    try:
        project = load_config(flags["config"])
    except ConfigError as e:
        print_error(f"Configuration error: {e}")
        raise SystemExit(1)

    setup_logging(
        log_level="DEBUG" if flags["verbose"] else project.get_log_level(),
        log_format=project.get_log_format(),
        log_file=project.get_log_file_path(),
    )

    if options.force_clean:
        print_info("Purging caches and previous output")

    pipeline = Pipeline(project, options)
    runner = {
        "pipeline": pipeline.run_full,
        "lint": pipeline.run_lint_only,
        "build": pipeline.run_build_only,
    }[command]

    try:
        result = runner()
    except ConfigError as e:
        print_error(str(e))
        raise SystemExit(1)

    if not result.success:
        console.print(result.error, markup=False, highlight=False)
        print_error(f"{command} failed at stage '{result.failed_stage}'")
        if result.cancelled:
            print_warning(f"Skipped: {', '.join(result.cancelled)}")
        raise SystemExit(1)

    if result.changed_files == 0:
        print_success("Nothing changed, everything up to date")
    else:
        print_success(
            f"{command} finished: {result.changed_files} files "
            f"in {format_duration(result.duration_ms / 1000)}"
        )


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="twinbuild")
@pipeline_options
@click.pass_context
def main(ctx, **flags):
    """
    twinbuild - incremental dual-target build orchestrator.

    Without a subcommand runs the full pipeline: type check (--flow),
    lint, compile for nodejs and browsers (or strip/copy with --no-build),
    then generate bridge files (--esm).
    """
    ctx.obj = dict(flags)
    if ctx.invoked_subcommand is None:
        _execute("pipeline", flags)


@main.command("lint")
@pipeline_options
@click.pass_context
def lint(ctx, **flags):
    """
    Only lint the changed source files.

    Examples:

      twinbuild lint

      twinbuild lint --warnings
    """
    _execute("lint", _merge_flags(ctx, flags))


@main.command("build")
@pipeline_options
@click.pass_context
def build(ctx, **flags):
    """
    Only compile the changed source files for both targets.

    Examples:

      twinbuild build

      twinbuild build --force
    """
    _execute("build", _merge_flags(ctx, flags))


if __name__ == "__main__":
    main()
