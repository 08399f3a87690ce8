from __future__ import annotations

import typer

from audioctl.apps.cli.runtime import run
from audioctl.services.context import AppContext

devices_app = typer.Typer(help="Output and input devices of the audio service.")
apps_app = typer.Typer(help="Per-application volume.")


@devices_app.command("list")
def devices_list() -> None:
    async def action(ctx: AppContext) -> None:
        listing = await ctx.audio.list_devices()
        if not listing.devices:
            typer.echo("No audio devices found")
            return
        for device in listing.devices:
            flags = []
            if device.default or device.name == listing.default_device:
                flags.append("default")
            if device.muted:
                flags.append("muted")
            suffix = f" [{', '.join(flags)}]" if flags else ""
            typer.echo(f"{device.name}: {device.volume}%{suffix}")

    run(action)


@devices_app.command("volume")
def devices_volume(
    device: str = typer.Argument(..., help="Device name."),
    level: int = typer.Argument(..., min=0, max=100, help="Volume 0-100."),
) -> None:
    async def action(ctx: AppContext) -> None:
        applied = await ctx.audio.set_device_volume(device, level)
        typer.echo(f"{device}: {applied}%")

    run(action)


@devices_app.command("mute")
def devices_mute(
    device: str = typer.Argument(..., help="Device name."),
    off: bool = typer.Option(False, "--off", help="Unmute instead."),
) -> None:
    async def action(ctx: AppContext) -> None:
        muted = await ctx.audio.set_device_mute(device, not off)
        typer.echo(f"{device}: {'muted' if muted else 'unmuted'}")

    run(action)


@apps_app.command("list")
def apps_list() -> None:
    async def action(ctx: AppContext) -> None:
        applications = await ctx.audio.list_applications()
        if not applications:
            typer.echo("No applications with audio found")
            return
        for item in applications:
            muted = " [muted]" if item.muted else ""
            typer.echo(f"{item.display_name}: {item.volume}%{muted}  ({item.process_path})")

    run(action)


@apps_app.command("volume")
def apps_volume(
    process_path: str = typer.Argument(..., help="Process path as shown by 'apps list'."),
    level: int = typer.Argument(..., min=0, max=100, help="Volume 0-100."),
) -> None:
    async def action(ctx: AppContext) -> None:
        applied = await ctx.audio.set_application_volume(process_path, level)
        typer.echo(f"{process_path}: {applied}%")

    run(action)
