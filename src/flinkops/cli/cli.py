"""CLI application for Flink session cluster tooling."""

import typer

from flinkops.cli.commands.session import app as session_app

app = typer.Typer(
    help="flinkops - Flink YARN session cluster tooling",
    no_args_is_help=True,
)

app.add_typer(
    session_app,
    name="session",
    help="Deploy / submit to / shut down YARN session clusters.",
)


if __name__ == "__main__":
    app()
