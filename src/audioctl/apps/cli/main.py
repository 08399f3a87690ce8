from __future__ import annotations

import typer

from audioctl.apps.cli.commands import audio, auth, sessions

app = typer.Typer(help="Control surface for the remote audio service.", no_args_is_help=True)

app.command("status")(auth.status)
app.command("pair")(auth.pair)
app.command("logout")(auth.logout)
app.add_typer(sessions.app, name="sessions")
app.add_typer(audio.devices_app, name="devices")
app.add_typer(audio.apps_app, name="apps")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
