"""CLI interface for the Connections Wikis client.

Global options select the service and credentials; subcommands map to
client calls.
"""

import click
from dotenv import load_dotenv

from connections_wikis import __version__, settings
from connections_wikis.cli.wiki import CliContext, register_commands
from connections_wikis.options import BasicAuth, BearerAuth

# Load environment variables from .env file
load_dotenv(override=False)


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show the connections-wikis version and exit.",
)
@click.option(
    "--base-url",
    envvar="CONNECTIONS_WIKIS_BASE_URL",
    default=None,
    help="Wikis root URL (env: CONNECTIONS_WIKIS_BASE_URL)",
)
@click.option(
    "--token",
    envvar="CONNECTIONS_WIKIS_TOKEN",
    default=None,
    help="OAuth bearer token (env: CONNECTIONS_WIKIS_TOKEN)",
)
@click.option(
    "--username",
    envvar="CONNECTIONS_WIKIS_USERNAME",
    default=None,
    help="Basic auth user (env: CONNECTIONS_WIKIS_USERNAME)",
)
@click.option(
    "--password",
    envvar="CONNECTIONS_WIKIS_PASSWORD",
    default=None,
    help="Basic auth password (env: CONNECTIONS_WIKIS_PASSWORD)",
)
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@click.option("-v", "--verbose", is_flag=True, help="Log requests to the console.")
@click.pass_context
def main(
    ctx: click.Context,
    version: bool,
    base_url: str | None,
    token: str | None,
    username: str | None,
    password: str | None,
    as_json: bool,
    verbose: bool,
) -> None:
    """Connections Wikis - query wikis, pages and navigation feeds.

    \b
      connections-wikis wikis                     List your wikis
      connections-wikis pages WIKI                List pages of a wiki
      connections-wikis page WIKI PAGE            Show a page entry
      connections-wikis media WIKI PAGE --text    Print page content
      connections-wikis nav WIKI                  Resolve the navigation tree
    """
    if version:
        click.echo(__version__)
        ctx.exit()

    auth = None
    if token:
        auth = BearerAuth(token)
    elif username and password:
        auth = BasicAuth(username, password)

    ctx.obj = CliContext(
        base_url=base_url or settings.get_base_url(),
        auth=auth,
        as_json=as_json,
        verbose=verbose,
    )

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(main)

__all__ = ["main"]
