from __future__ import annotations

import typer

from audioctl.apps.cli.formatting import format_expiry, format_relative
from audioctl.apps.cli.runtime import run
from audioctl.services.context import AppContext

app = typer.Typer(help="Inspect and revoke paired sessions.")


@app.command("list")
def list_sessions() -> None:
    async def action(ctx: AppContext) -> None:
        sessions = await ctx.sessions.refresh()
        if not sessions:
            typer.echo("No active sessions")
            return
        for session in sessions:
            marker = " (current)" if session.is_current else ""
            typer.echo(f"{session.id}  {session.device_name}{marker}")
            typer.echo(
                f"    created {format_relative(session.created_at)}, "
                f"last used {format_relative(session.last_used_at)}, "
                f"expires in {format_expiry(session.expires_at)}"
            )

    run(action)


@app.command("revoke")
def revoke(session_id: str = typer.Argument(..., help="Session id as shown by 'sessions list'.")) -> None:
    async def action(ctx: AppContext) -> None:
        await ctx.sessions.refresh()
        await ctx.sessions.revoke(session_id)
        typer.secho(f"Session {session_id} revoked.", fg=typer.colors.GREEN)

    run(action)
