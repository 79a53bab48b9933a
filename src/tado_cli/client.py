#!/usr/bin/env python3
"""tado_cli - a CLI utility that is not a core part of the library."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import tempfile
from datetime import timedelta as td
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

import aiofiles
import click

from tadoasync import TadoClient, exceptions as exc

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from io import TextIOWrapper


TOKEN_FILE: Final = Path(tempfile.gettempdir()) / ".tado-tokens.tmp"

SZ_HOME: Final = "home"
SZ_TADO_KWARGS: Final = "tado_kwargs"


_LOGGER: Final = logging.getLogger(__name__)


def _check_positive_int(ctx: click.Context, param: click.Parameter, value: int) -> int:
    """Validate the parameter is a positive int."""

    if value < 0:
        raise click.BadParameter("must >= 0")

    return value


async def _write(output_file: TextIOWrapper | Any, content: str) -> None:
    """Write to a file, async if possible and sync otherwise."""

    if output_file.name == "<stdout>":
        output_file.write(content)
    else:
        async with aiofiles.open(output_file.name, "w") as fp:
            await fp.write(content)


def _run(ctx: click.Context, fnc: Callable[[TadoClient], Awaitable[Any]]) -> Any:
    """Run a coroutine with a (new) client, and close the client afterwards."""

    async def run() -> Any:
        kwargs = dict(ctx.obj[SZ_TADO_KWARGS])
        username, password = kwargs.pop("username"), kwargs.pop("password")

        async with TadoClient(username, password, **kwargs) as tado:
            if home := ctx.obj[SZ_HOME]:
                await tado.set_active_home(home)
            return await fnc(tado)

    try:
        return asyncio.run(run())
    except exc.TadoError as err:
        raise click.ClickException(str(err)) from err


@click.group()
@click.option("--username", "-u", envvar="TADO_USERNAME", help="The account username.")
@click.option("--password", "-p", envvar="TADO_PASSWORD", help="The account password.")
@click.option("--home", "-H", default=None, help="The name of the home to use.")
@click.option(  # --token-file
    "--token-file",
    "-t",
    type=click.Path(dir_okay=False, path_type=Path),
    default=TOKEN_FILE,
    show_default=True,
    help="The (encrypted) token cache.",
)
@click.option(
    "--passphrase", envvar="TADO_PASSPHRASE", help="The token cache passphrase."
)
@click.option("--no-tokens", "-c", is_flag=True, help="Dont use the token cache.")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    username: str | None,
    password: str | None,
    home: str | None,
    token_file: Path,
    passphrase: str | None,
    no_tokens: bool | None = None,
    debug: bool | None = None,
) -> None:
    """A demonstration CLI for the tadoasync client library."""

    if not username or not password:
        raise click.BadParameter(
            "Username/password not provided. Use --username/-u and --password/-p "
            "(or TADO_USERNAME and TADO_PASSWORD)."
        )

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    kwargs: dict[str, Any] = {"debug": bool(debug)}
    if not no_tokens and passphrase:  # then cache the tokens
        kwargs |= {"token_file": token_file, "passphrase": passphrase}
    elif not no_tokens:
        _LOGGER.warning("No passphrase, so the token cache will not be used")

    ctx.obj = ctx.obj or {}  # may be None
    ctx.obj[SZ_HOME] = home
    ctx.obj[SZ_TADO_KWARGS] = {"username": username, "password": password} | kwargs


@cli.command()
@click.pass_context
def homes(ctx: click.Context) -> None:
    """List the homes of the account."""

    names: list[str] = _run(ctx, lambda tado: tado.get_homes())

    for name in names:
        click.echo(name)


@cli.command()
@click.pass_context
def zones(ctx: click.Context) -> None:
    """List the zones of the (active) home."""

    async def get_zones(tado: TadoClient) -> list[tuple[int, str, str]]:
        return [(z.id, z.name, z.type) for z in await tado.get_zones()]

    for zone_id, name, zone_type in _run(ctx, get_zones):
        click.echo(f"{zone_id:>3}  {name}  ({zone_type})")


@cli.command()
@click.pass_context
def weather(ctx: click.Context) -> None:
    """Show the weather at the (active) home."""

    result = _run(ctx, lambda tado: tado.get_weather())
    click.echo(json.dumps(result, indent=4))


@cli.command("zone-state")
@click.argument("zone-id", type=int, callback=_check_positive_int)
@click.pass_context
def zone_state(ctx: click.Context, zone_id: int) -> None:
    """Show the state of a zone."""

    async def get_state(tado: TadoClient) -> Any:
        for zone in await tado.get_zones():
            if zone.id == zone_id:
                return await zone.get_state()
        raise click.BadParameter(f"no such zone: {zone_id}")

    click.echo(json.dumps(_run(ctx, get_state), indent=4))


@cli.command("set-overlay")
@click.argument("zone-id", type=int, callback=_check_positive_int)
@click.argument("temperature", type=float)
@click.option(  # --duration
    "--duration",
    "-D",
    type=int,
    default=0,
    callback=_check_positive_int,
    help="The duration in seconds (default is until changed).",
)
@click.pass_context
def set_overlay(ctx: click.Context, zone_id: int, temperature: float, duration: int) -> None:
    """Set a manual temperature for a zone (below 5 °C is off)."""

    async def overlay(tado: TadoClient) -> None:
        for zone in await tado.get_zones():
            if zone.id == zone_id:
                await zone.set_overlay(
                    temperature, duration=td(seconds=duration) if duration else None
                )
                return
        raise click.BadParameter(f"no such zone: {zone_id}")

    _run(ctx, overlay)
    click.echo(" - finished.")


@cli.command("delete-overlay")
@click.argument("zone-id", type=int, callback=_check_positive_int)
@click.pass_context
def delete_overlay(ctx: click.Context, zone_id: int) -> None:
    """Cancel the manual temperature of a zone."""

    async def overlay(tado: TadoClient) -> None:
        for zone in await tado.get_zones():
            if zone.id == zone_id:
                await zone.delete_overlay()
                return
        raise click.BadParameter(f"no such zone: {zone_id}")

    _run(ctx, overlay)
    click.echo(" - finished.")


@cli.command()
@click.option(  # --output-file
    "--output-file",
    "-o",
    type=click.File("w"),
    default="-",
    help="The output file.",
)
@click.pass_context
def dump(ctx: click.Context, output_file: TextIOWrapper) -> None:
    """Download the account, the home info and the zones of the (active) home."""

    async def get_dump(tado: TadoClient) -> dict[str, Any]:
        return {
            "account": await tado.get_account(),
            "home": await tado.get_home_info(),
            "zones": [z.config for z in await tado.get_zones()],
        }

    result = _run(ctx, get_dump)

    asyncio.run(_write(output_file, json.dumps(result, indent=4) + "\r\n"))


def main() -> None:
    try:
        cli(obj={})  # default for ctx.obj is None

    except click.ClickException as err:
        print(f"Error: {err}")
        sys.exit(-1)


if __name__ == "__main__":
    main()
