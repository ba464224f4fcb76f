"""AlignAI CLI for operators.

Entry point registered in pyproject.toml:
    alignai = "alignai.cli:app"

Commands:
    alignai init-db     create the schema
    alignai questions   show (optionally personalized) discovery questions
    alignai alignment   run conflict detection for a section
    alignai prd         generate a project's PRD
"""

import logging

import typer

from alignai.cli.commands import alignment, init_db_command, prd, questions
from alignai.config import settings

app = typer.Typer(
    name="alignai",
    help="AlignAI CLI: team alignment and PRD export",
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


app.command("init-db")(init_db_command)
app.command()(questions)
app.command()(alignment)
app.command()(prd)
