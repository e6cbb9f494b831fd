import asyncio
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click
from rich.console import Console

from sym_agents.driver import ReconciliationDriver
from sym_agents.models import MissingIncludePolicy
from sym_agents.termination import TerminationHandler
from sym_agents.tui import ConsoleLog, SymAgentsConsoleUI
from sym_agents.utils import absolute_path


MISSING_INCLUDE_VALUES = [policy.value for policy in MissingIncludePolicy]


def _root_argument() -> Callable:
    return click.argument(
        "root",
        required=False,
        type=click.Path(file_okay=False, path_type=Path),
    )


def resolve_root(root: Optional[Path]) -> Path:
    """Explicit argument, then ``$INIT_CWD``, then the working directory."""
    try:
        if root is not None:
            return absolute_path(root)
        init_cwd = os.environ.get("INIT_CWD")
        if init_cwd:
            return absolute_path(init_cwd)
        return absolute_path(os.getcwd())
    except FileNotFoundError as exc:
        raise click.ClickException(f"Fatal: cannot read working directory ({exc})")


def _driver_from_obj(obj: Dict[str, Any], root: Optional[Path]) -> ReconciliationDriver:
    root_directory = resolve_root(root)
    log = ConsoleLog(verbose=obj["verbose"])
    log.info(f"Using root directory: {root_directory}")
    return ReconciliationDriver(
        root_directory,
        log=log,
        missing_include=MissingIncludePolicy(obj["missing_include"]),
    )


async def _watch_until_stopped(driver: ReconciliationDriver) -> None:
    handler = TerminationHandler(driver)
    handler.install()
    try:
        await driver.watch()
        await handler.stopped.wait()
    finally:
        await driver.stop(cleanup=False)
        handler.uninstall()


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.option(
    "--missing-include",
    type=click.Choice(MISSING_INCLUDE_VALUES, case_sensitive=False),
    default=MissingIncludePolicy.MATCH_ALL.value,
    show_default=True,
    help="What a config without an include list matches.",
)
@click.option("-v", "--verbose", is_flag=True, help="Also log skipped directories.")
@click.pass_context
def cli(ctx: click.Context, missing_include: str, verbose: bool) -> None:
    """Keep AGENTS.md symlinks in sync with agents.config files."""
    ctx.obj = {"missing_include": missing_include.lower(), "verbose": verbose}
    if ctx.invoked_subcommand is None:
        ctx.invoke(watch)


@cli.command(help="Link once, then keep links in sync until interrupted.")
@_root_argument()
@click.pass_obj
def watch(obj: Dict[str, Any], root: Optional[Path] = None) -> None:
    driver = _driver_from_obj(obj, root)
    try:
        asyncio.run(_watch_until_stopped(driver))
    except Exception as exc:
        raise click.ClickException(f"Fatal: {exc}")


@cli.command(help="Create every link once and exit, leaving links in place.")
@_root_argument()
@click.pass_obj
def once(obj: Dict[str, Any], root: Optional[Path]) -> None:
    ui = SymAgentsConsoleUI(Console())
    driver = _driver_from_obj(obj, root)
    try:
        report = asyncio.run(driver.run_once())
    except Exception as exc:
        raise click.ClickException(f"Fatal: {exc}")
    ui.render_summary(report, mode="once")


@cli.command(help="Remove links derived from the current configs.")
@_root_argument()
@click.pass_obj
def remove(obj: Dict[str, Any], root: Optional[Path]) -> None:
    ui = SymAgentsConsoleUI(Console())
    driver = _driver_from_obj(obj, root)
    try:
        report = asyncio.run(driver.remove())
    except Exception as exc:
        raise click.ClickException(f"Fatal: {exc}")
    ui.render_summary(report, mode="remove")


@cli.command(help="Print a dry-run plan without touching the filesystem.")
@_root_argument()
@click.pass_obj
def plan(obj: Dict[str, Any], root: Optional[Path]) -> None:
    ui = SymAgentsConsoleUI(Console())
    driver = _driver_from_obj(obj, root)
    try:
        report = driver.plan()
    except Exception as exc:
        raise click.ClickException(f"Fatal: {exc}")

    ui.render_plan(report, mode="plan")

    if report.errors:
        raise click.exceptions.Exit(1)


def main() -> int:
    try:
        cli(standalone_mode=False)
    except click.exceptions.Exit as exc:
        code = exc.exit_code
        return code if isinstance(code, int) else 1
    except click.ClickException as exc:
        exc.show()
        return 2
    except click.exceptions.Abort:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
