import logging
import subprocess
import sys
from typing import List, Optional

import click
import typer

import config as conf
import loggers
import util
from main import app

loggers.config()

logger = logging.getLogger()

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"], ignore_unknown_options=True)
CELERY_LOG_LEVEL_NAME: str = loggers.mlevelname(conf.CELERY_LOG_LEVEL)


db_cli = typer.Typer(help="Database Management")
test_cli = typer.Typer(help="Test Commands")
wells_cli = typer.Typer(help="Well status maintenance")
monitor_cli = typer.Typer(help="One-off runs of the background checks")


async def _with_db(coro_fn, *args, **kwargs):
    from db import db

    await db.startup()
    try:
        return await coro_fn(*args, **kwargs)
    finally:
        await db.shutdown()


# -----------------------------  subcommands  -------------------------------- #


@test_cli.command(help="Execute a smoke test against a worker instance")
def smoke_test():
    from cq.tasks import smoke_test as smoke_test_task

    result = smoke_test_task.apply_async().get(timeout=10)
    typer.echo(result)


@db_cli.command(help="Create all tables that do not exist yet")
def create():
    from db import db

    util.aio.async_to_sync(_with_db(db.create_all))
    logger.info(f"Created tables in {conf.DATABASE_CONFIG.database}")


@db_cli.command(help="Drop all tables")
def drop():
    from db import db

    util.aio.async_to_sync(_with_db(db.drop_all))
    logger.info(f"Dropped tables in {conf.DATABASE_CONFIG.database}")


@db_cli.command(help="Drop and recreate all tables")
def recreate():  # nocover

    if conf.ENV not in ["dev", "development"]:
        logger.error(
            f"""Cant recreate database when not in development mode. Set ENV=development as an environment variable to enable this feature."""  # noqa
        )
        sys.exit(0)

    drop()
    create()
    logger.info(f"Recreated database at: {conf.DATABASE_CONFIG.database}")


@wells_cli.command(help="Rebuild the status of one well, or every well, from history")
def rebuild(
    well_name: Optional[str] = typer.Argument(None),
    all_wells: bool = typer.Option(False, "--all", help="Rebuild every well"),
):
    from sqlalchemy import distinct, select

    from db import db
    from db.models import ProcessedPacket
    from handlers import rebuild_well_status

    if not well_name and not all_wells:
        typer.secho("Pass a well name or --all", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    async def coro() -> List[str]:
        async with db.session() as session:
            async with session.begin():
                if all_wells:
                    names = list(
                        await session.scalars(
                            select(distinct(ProcessedPacket.well_name))
                        )
                    )
                else:
                    names = [well_name]
                for name in names:
                    status = await rebuild_well_status(session, name)
                    typer.echo(f"{name:<30} {status.flow_rate if status else 'cleared'}")
        return names

    names = util.aio.async_to_sync(_with_db(coro))
    logger.info(f"Rebuilt {len(util.ensure_list(names))} well statuses")


@monitor_cli.command(help="Run the inbox watchdog once")
def watchdog():
    from monitor import Watchdog

    summary = util.aio.async_to_sync(_with_db(Watchdog().arun))
    typer.echo(summary)


@monitor_cli.command(help="Run the health check once")
def health():
    from monitor import HealthMonitor

    summary = util.aio.async_to_sync(_with_db(HealthMonitor().arun))
    typer.echo(summary)


# --- run -------------------------------------------------------------------- #


# NOTE: typer doesn't yet support passing unknown options. The workaround below is
#       creating a click parent group and adding each typer group as a sub-group
#       of the click parent, then creating a click group to handle the commands
#       that need dynamic arguments.

cli = click.Group(
    help="Tankstats: Process tank pulls into flow rates, pull estimates and production"
)
run_cli = click.Group("run", help="Execution procedures")


@run_cli.command(
    help="Launch a web process to serve the api",
    context_settings={"ignore_unknown_options": True},
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def web(args):
    cmd = ["uvicorn", "main:app"] + list(args)
    subprocess.call(cmd)  # nocover


@run_cli.command(
    help="Launch a web process with hot reload enabled",
    context_settings={"ignore_unknown_options": True},
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def dev(args):
    cmd = ["uvicorn", "main:app", "--reload"] + list(args)
    subprocess.call(cmd)


@run_cli.command(
    help="Launch a Celery worker", context_settings={"ignore_unknown_options": True}
)
@click.argument("celery_args", nargs=-1, type=click.UNPROCESSED)
def worker(celery_args):
    cmd = [
        "celery",
        "-A",
        "cq:celery_app",
        "worker",
        "--loglevel",
        CELERY_LOG_LEVEL_NAME,
    ] + list(celery_args)
    subprocess.call(cmd)


@run_cli.command(
    help="Launch a Celery Beat scheduler",
    context_settings={"ignore_unknown_options": True},
)
@click.argument("celery_args", nargs=-1, type=click.UNPROCESSED)
def cron(celery_args):
    cmd = ["celery", "-A", "cq:celery_app", "beat"] + list(celery_args)
    subprocess.call(cmd)


# --- top -------------------------------------------------------------------- #


@cli.command(help="List api routes")
def routes():
    for r in app.routes:
        typer.echo(f"{r.name:<25} {r.path:<30} {getattr(r, 'methods', '')}")


# --- attach groups ---------------------------------------------------------- #


cli.add_command(run_cli)


cli.add_command(typer.main.get_command(db_cli), "db")
cli.add_command(typer.main.get_command(test_cli), "test")
cli.add_command(typer.main.get_command(wells_cli), "wells")
cli.add_command(typer.main.get_command(monitor_cli), "monitor")


def main(argv: List[str] = sys.argv):
    """
    Args:
        argv (list): List of arguments
    Returns:
        int: A return code
    """

    cli()


if __name__ == "__main__":
    cli()
