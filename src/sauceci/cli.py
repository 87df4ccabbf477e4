# cli.py
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from sauceci.engine import run_job, run_jobs
from sauceci.errors import ConfigError
from sauceci.model import Framework
from sauceci.tasks import DEFAULT_TASKS_FILE, load_tasks, select_jobs
from sauceci.ui.console import Console, get_console, report, set_console


def discover_tasks_file(tasks_arg: str | None) -> Path:
    """
    Find the tasks file from the argument or the default name.

    Raises:
        SystemExit: If no tasks file can be found
    """
    console = get_console()

    tasks_path = Path(tasks_arg or DEFAULT_TASKS_FILE)
    if not tasks_path.exists() and tasks_path.suffix != ".py":
        tasks_path = Path(str(tasks_path) + ".py")
    if not tasks_path.exists():
        console.print_error(
            "Tasks file not found",
            f"Could not find tasks file: {tasks_path}",
            suggestion=f"Create {DEFAULT_TASKS_FILE} or specify one explicitly:\n  sauceci jasmine --tasks my_tasks.py",
        )
        sys.exit(1)
    return tasks_path


async def _run_targets(framework: Framework, jobs, parallel: bool) -> dict[str, bool]:
    if parallel:
        passed = await run_jobs([(config, framework) for _, config in jobs], report)
        return dict(zip((name for name, _ in jobs), passed))

    results: dict[str, bool] = {}
    for name, config in jobs:
        get_console().print_header(f"Running {framework.value} target: {name}")
        results[name] = await run_job(config, framework, report)
    return results


def _run_framework(ctx, framework: Framework, targets, tasks_file, tunneled, build, parallel) -> None:
    console = get_console()
    tasks_path = discover_tasks_file(tasks_file)

    try:
        table = load_tasks(tasks_path)
        jobs = select_jobs(table, framework, targets)
    except ConfigError as e:
        console.print_error("Invalid tasks file", str(e), details=[str(tasks_path)])
        sys.exit(1)
    except Exception as e:
        console.print_error(
            "Failed to load tasks",
            f"Could not load tasks from {tasks_path}",
            details=[str(e)],
        )
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)

    for _, config in jobs:
        if tunneled is not None:
            config.tunneled = tunneled
        if build is not None:
            config.build = build

    console.print_run_started(framework.value, [name for name, _ in jobs])

    try:
        results = asyncio.run(_run_targets(framework, jobs, parallel))
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)

    console.print_results(results)
    if not all(results.values()):
        sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (verbose tunnel output and stack traces)",
)
@click.pass_context
def cli(ctx, debug):
    """sauceci: run browser unit tests on Sauce Labs."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


def _framework_command(name: str, framework: Framework, label: str):
    @cli.command(name=name, help=f"Run {label} test cases using Sauce Labs browsers.")
    @click.argument("targets", nargs=-1)
    @click.option("--tasks", "tasks_file", default=None, help=f"Tasks file (defaults to {DEFAULT_TASKS_FILE})")
    @click.option("--tunnel/--no-tunnel", "tunneled", default=None, help="Override the targets' tunneled option")
    @click.option("--build", default=None, help="Build label reported to Sauce Labs")
    @click.option("--parallel/--no-parallel", default=False, show_default=True, help="Run targets concurrently")
    @click.pass_context
    def command(ctx, targets, tasks_file, tunneled, build, parallel):
        _run_framework(ctx, framework, targets, tasks_file, tunneled, build, parallel)

    return command


jasmine = _framework_command("jasmine", Framework.JASMINE, "Jasmine")
qunit = _framework_command("qunit", Framework.QUNIT, "QUnit")
yui = _framework_command("yui", Framework.YUI, "YUI")
mocha = _framework_command("mocha", Framework.MOCHA, "Mocha")
custom = _framework_command("custom", Framework.CUSTOM, "custom")


if __name__ == "__main__":
    cli()
