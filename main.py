from rich.pretty import pprint

from argroute import *

__prog__ = "cli"
__codes__ = {FaultCode.UNKNOWN_COMMAND: "E-CMD"}

cli = program("cli", shell=True, colorful=True)
db = cli.program("db")


@cli.command("build", options=[
    {"name": "output", "aliases": ["o"], "type": "string", "description": "where to write"},
    {"name": "jobs", "aliases": ["j"], "type": "number", "description": "parallel jobs"},
    {"name": "verbose", "aliases": ["v"]},
])
def build(arguments, options):
    pprint((arguments, dict(options)))


@db.command("migrate", options=[{"name": "dry-run", "aliases": ["n"], "description": "print the plan only"}])
def migrate(arguments, options):
    pprint((arguments, dict(options)))


if __name__ == '__main__':
    invoke(cli)
