"""Main CLI application."""

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from .feeds import feeds_app
from .init import init_command
from .run import run_command

app = typer.Typer(
    name="feedhub",
    help="Feedhub - RSS/Atom ingestion into an indexed store",
    no_args_is_help=True,
)

# Register commands
app.command("init")(init_command)
app.command("run")(run_command)
app.add_typer(feeds_app, name="feeds", help="Manage feeds")


if __name__ == "__main__":
    app()
