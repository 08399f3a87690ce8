"""Pairing, status and logout commands."""

from __future__ import annotations

import asyncio
import platform
from typing import Optional

import typer

from audioctl.apps.cli.runtime import print_error, run
from audioctl.services.auth.enums import ConnectionState, PairingState
from audioctl.services.auth.errors import ApiError
from audioctl.services.context import AppContext


def _default_device_name() -> str:
    node = platform.node() or "unknown host"
    return f"audioctl on {node}"


def status() -> None:
    """Show connectivity and authentication state."""

    async def action(ctx: AppContext) -> None:
        state = await ctx.health.check()
        if state is ConnectionState.CONNECTED:
            typer.secho("Connected", fg=typer.colors.GREEN)
        else:
            typer.secho(f"Disconnected ({ctx.health.last_error})", fg=typer.colors.RED)
        typer.echo(f"Service: {ctx.config.api.base_url}")
        meta = ctx.store.get_session_meta()
        if ctx.store.has_token():
            name = meta.device_name if meta and meta.device_name else "unnamed device"
            typer.echo(f"Authenticated as: {name}")
            if meta and meta.id:
                typer.echo(f"Session: {meta.id}")
        elif ctx.store.api_key:
            typer.echo("Authenticated with static API key")
        else:
            typer.echo("Not paired; run 'audioctl pair'")

    run(action)


def pair(
    device_name: Optional[str] = typer.Option(None, "--device-name", "-n", help="Name shown in the session list."),
    code: Optional[str] = typer.Option(None, "--code", help="Submit this code instead of prompting."),
) -> None:
    """Pair with the service using the code it displays."""

    async def action(ctx: AppContext) -> None:
        machine = ctx.pairing
        try:
            status = await machine.refresh_status()
        except ApiError as exc:
            print_error(f"Could not read pairing status: {exc.message}")
            raise typer.Exit(1)
        if status is not None and not status.pairing_enabled:
            print_error("Pairing is disabled on the service.")
            raise typer.Exit(1)

        await machine.initiate(device_name or _default_device_name())
        if machine.state is not PairingState.AWAITING_CODE:
            print_error(machine.last_error or "Pairing could not be started.")
            raise typer.Exit(1)

        typer.echo(
            f"Enter the {machine.code_length}-character code shown by the service "
            f"(expires in {machine.time_remaining} seconds)."
        )
        pending = code
        while machine.state is PairingState.AWAITING_CODE:
            entered = pending if pending is not None else await asyncio.to_thread(typer.prompt, "Pairing code")
            if machine.state is not PairingState.AWAITING_CODE:
                break
            if await machine.complete(entered):
                meta = ctx.store.get_session_meta()
                typer.secho(f"Paired as {meta.device_name if meta else 'this device'}.", fg=typer.colors.GREEN)
                if meta and meta.expires_at:
                    typer.echo(f"Session expires: {meta.expires_at}")
                return
            print_error(machine.last_error or "Pairing failed.")
            if pending is not None:
                raise typer.Exit(1)

        print_error(machine.last_error or "Pairing did not complete.")
        raise typer.Exit(1)

    run(action)


def logout() -> None:
    """Revoke this client's session on the service and forget the token."""

    async def action(ctx: AppContext) -> None:
        if not ctx.store.has_token():
            typer.echo("Not paired.")
            return
        meta = ctx.store.get_session_meta()
        await ctx.sessions.logout()
        typer.secho("Logged out.", fg=typer.colors.GREEN)
        if meta and meta.id:
            typer.echo(f"Session {meta.id} revoked.")

    run(action)
