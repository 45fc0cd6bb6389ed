"""CLI entry point."""

import logging

import typer

from serverdeck.cli.db_commands import app as db_app
from serverdeck.cli.report_commands import app as report_app
from serverdeck.cli.server_commands import app as server_app
from serverdeck.cli.view_commands import app as view_app
from serverdeck.config import settings

app = typer.Typer(
    name="serverdeck",
    help="Server inventory management.",
    no_args_is_help=True,
)

app.add_typer(server_app, name="server", help="Server management")
app.add_typer(view_app, name="view", help="Saved views")
app.add_typer(report_app, name="report", help="Inventory reports")
app.add_typer(db_app, name="db", help="Database operations")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


if __name__ == "__main__":
    app()
