#!/usr/bin/env python
# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

import asyncio
import json
import logging.config
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

env_path = Path(__file__).absolute().parent / '.env'
load_dotenv(dotenv_path=env_path)

with open(os.environ.get('TXPLANS_LOG_CFG', 'logging.yaml'), encoding="utf-8") as log_config_file:
    logging.config.dictConfig(yaml.safe_load(log_config_file))

import click  # noqa: E402
import uvloop  # noqa: E402
from sanic import Sanic  # noqa: E402

from api import init_api  # noqa: E402
from catalog.plans import PlanDataError, PlanDataLoader  # noqa: E402
from catalog.zip_table import ZipMappingTable  # noqa: E402
from routing.zip_validation import ZipValidationService  # noqa: E402

uvloop.install()
asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
asyncio.set_event_loop(asyncio.new_event_loop())

logger = logging.getLogger(__name__)

api = Sanic('txplans-api', env_prefix="TXPLANS_")
init_api(api)


@click.command(help="Run sanic server")
@click.option('--host', help='Setup host ip to listen up, default to 0.0.0.0', default='0.0.0.0')
@click.option('--port', help='Setup port to attach, default to 8080', type=int, default=8080)
@click.option('--workers', help='Setup workers to run, default to 1', type=int, default=1)
@click.option('--debug', help='Enable or disable debugging', is_flag=True)
@click.option('--accesslog', help='Enable or disable access log', is_flag=True)
def start(host, port, workers, debug, accesslog):
    with open(api.config.get('LOG_CFG', 'logging.yaml'), encoding="utf-8") as log_file:
        logging.config.dictConfig(yaml.safe_load(log_file))
    api.run(
        host=host,
        port=port,
        workers=workers,
        debug=debug,
        auto_reload=debug,
        access_log=accesslog)


@click.group()
def server():
    pass


server.add_command(start)


@click.group()
def cli():
    pass


cli.add_command(server)


@click.group()
def manage():
    """Utility commands for checking the data a deployment serves."""


async def _check_data(data_dir):
    loader = PlanDataLoader(data_dir)
    table = await ZipMappingTable.load()
    report = {}
    for city in loader.available_cities():
        try:
            report[city] = await loader.count_plans(city)
        except PlanDataError as exc:
            logger.error("Plan file for %s is unreadable: %s", city, exc)
            report[city] = None
    return table, report


@manage.command("check-data")
@click.option("--data-dir", help="Directory with per-city plan files, defaults to TXPLANS_DATA_DIR.")
def check_data(data_dir):
    """Load every city plan file and the ZIP tables, and report what was found."""
    table, report = asyncio.run(_check_data(data_dir))
    click.echo(f"ZIP mappings: {len(table)} ({len(table.city_slugs())} deregulated cities)")
    broken = 0
    for city, count in report.items():
        if count is None:
            broken += 1
            click.echo(f"  {city}: unreadable")
        else:
            click.echo(f"  {city}: {count} plans")
    if not report:
        raise click.ClickException("No plan files found")
    if broken:
        raise click.ClickException(f"{broken} plan file(s) could not be read")


async def _lookup_zip(zip_code, data_dir):
    table = await ZipMappingTable.load()
    service = ZipValidationService(table, PlanDataLoader(data_dir))
    return await service.resolve(zip_code)


@manage.command("lookup-zip")
@click.argument("zip_code")
@click.option("--data-dir", help="Directory with per-city plan files, defaults to TXPLANS_DATA_DIR.")
def lookup_zip(zip_code, data_dir):
    """Classify a ZIP code the same way /api/v1/zip/lookup does."""
    result = asyncio.run(_lookup_zip(zip_code, data_dir))
    click.echo(json.dumps(result.to_json_dict(), indent=2))
    if not result.resolved:
        raise SystemExit(1)


cli.add_command(manage, name="manage")


if __name__ == '__main__':
    cli()
