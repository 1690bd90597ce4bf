"""Wiki CLI commands.

Each command builds a :class:`WikisClient` from the global options, runs a
single client call and prints the result as a rich table or JSON.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import click
from pydantic import BaseModel
from rich.console import Console
from rich.table import Table

from connections_wikis.cli.logging import configure_cli_logging
from connections_wikis.client import WikisClient
from connections_wikis.exceptions import WikisError
from connections_wikis.options import Auth, RequestConfig
from connections_wikis.parsers import media_text

console = Console()


@dataclass
class CliContext:
    base_url: str | None
    auth: Auth | None = None
    as_json: bool = False
    verbose: bool = False


def _run(
    obj: CliContext,
    command: str,
    call: Callable[[WikisClient], Awaitable[Any]],
    config: RequestConfig | None = None,
) -> Any:
    """Run one client call, turning client errors into exit code 1."""
    configure_cli_logging(command, verbose=obj.verbose)

    if not obj.base_url:
        console.print(
            "[red]No base URL: pass --base-url or set CONNECTIONS_WIKIS_BASE_URL[/red]"
        )
        raise SystemExit(1)

    async def _call() -> Any:
        async with WikisClient(obj.base_url, auth=obj.auth, defaults=config) as client:
            return await call(client)

    try:
        return asyncio.run(_call())
    except WikisError as e:
        status = f" (HTTP {e.http_status})" if e.http_status else ""
        console.print(f"[red]Error{status}: {e}[/red]")
        raise SystemExit(1) from e


def _dump(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, list):
        return [_dump(item) for item in result]
    return result


def _echo_json(result: Any) -> None:
    click.echo(json.dumps(_dump(result), indent=2))


def _print_rows(title: str, columns: list[str], rows: list[list[Any]]) -> None:
    table = Table(title=title)
    for column in columns:
        table.add_column(column, style="cyan" if column == "ID" else None)
    for row in rows:
        table.add_row(*("" if value is None else str(value) for value in row))
    console.print(table)


@click.command("wikis")
@click.option("--ps", type=int, default=None, help="Page size")
@click.pass_obj
def wikis(obj: CliContext, ps: int | None) -> None:
    """List wikis you are a member of."""
    result = _run(obj, "wikis", lambda c: c.wikis_feed({"ps": ps}))
    if obj.as_json:
        _echo_json(result)
        return
    _print_rows("Wikis", ["ID", "Title"], [[w.id, w.title] for w in result])


@click.command("pages")
@click.argument("wiki")
@click.option("--ps", type=int, default=None, help="Page size")
@click.pass_obj
def pages(obj: CliContext, wiki: str, ps: int | None) -> None:
    """List pages of WIKI."""
    result = _run(obj, "pages", lambda c: c.pages_feed({"wikiLabel": wiki, "ps": ps}))
    if obj.as_json:
        _echo_json(result)
        return
    _print_rows(
        f"Pages of {wiki}",
        ["ID", "Title", "Label"],
        [[p.id, p.title, p.label] for p in result],
    )


@click.command("page")
@click.argument("wiki")
@click.argument("page")
@click.pass_obj
def page(obj: CliContext, wiki: str, page: str) -> None:
    """Show the entry of PAGE in WIKI."""
    result = _run(
        obj, "page", lambda c: c.wiki_page({"wikiLabel": wiki, "pageLabel": page})
    )
    if obj.as_json or result is None:
        _echo_json(result)
        return
    console.print(f"[bold]{result.title}[/bold]")
    console.print(f"  ID:      {result.id}")
    console.print(f"  Author:  {result.author.display_name}")
    console.print(f"  Updated: {result.updated_at}")
    console.print(f"  Content: {result.content}")


@click.command("comments")
@click.argument("wiki")
@click.argument("page")
@click.pass_obj
def comments(obj: CliContext, wiki: str, page: str) -> None:
    """List comments on PAGE."""
    result = _run(
        obj,
        "comments",
        lambda c: c.page_comments({"wikiLabel": wiki, "pageLabel": page}),
    )
    if obj.as_json:
        _echo_json(result)
        return
    _print_rows(
        "Comments",
        ["ID", "Author", "Updated", "Content"],
        [[m.id, m.author.display_name, m.updated_at, m.content] for m in result],
    )


@click.command("versions")
@click.argument("wiki")
@click.argument("page")
@click.pass_obj
def versions(obj: CliContext, wiki: str, page: str) -> None:
    """List versions of PAGE."""
    result = _run(
        obj,
        "versions",
        lambda c: c.page_versions({"wikiLabel": wiki, "pageLabel": page}),
    )
    if obj.as_json:
        _echo_json(result)
        return
    _print_rows(
        "Versions",
        ["ID", "Number", "Author", "Updated"],
        [[v.id, v.number, v.author.display_name, v.updated_at] for v in result],
    )


@click.command("version")
@click.argument("wiki")
@click.argument("page")
@click.argument("version")
@click.pass_obj
def version(obj: CliContext, wiki: str, page: str, version: str) -> None:
    """Show VERSION of PAGE."""
    query = {"wikiLabel": wiki, "pageLabel": page, "versionLabel": version}
    result = _run(obj, "version", lambda c: c.page_version_details(query))
    _echo_json(result)


@click.command("media")
@click.argument("wiki")
@click.argument("page")
@click.option("--version", "version_label", default=None, help="Version label")
@click.option("--text", "as_text", is_flag=True, help="Strip HTML markup.")
@click.pass_obj
def media(
    obj: CliContext, wiki: str, page: str, version_label: str | None, as_text: bool
) -> None:
    """Print the HTML content of PAGE (or one of its versions)."""
    query = {"wikiLabel": wiki, "pageLabel": page}
    if version_label:
        query["versionLabel"] = version_label
        result = _run(obj, "media", lambda c: c.version_media(query))
    else:
        result = _run(obj, "media", lambda c: c.page_media(query))
    click.echo(media_text(result) if as_text else result)


@click.command("nav")
@click.argument("wiki")
@click.option("--page", "page_label", default=None, help="Resolve below this page")
@click.option("--allow-stubs", is_flag=True, help="Do not resolve stub items.")
@click.pass_obj
def nav(obj: CliContext, wiki: str, page_label: str | None, allow_stubs: bool) -> None:
    """Print the navigation tree of WIKI as a flat list.

    \b
    Examples:
      connections-wikis nav 2e9f5515-a44d-49e2-9049-3d0a337720ee
      connections-wikis --json nav my-wiki --page 3331c115
    """
    query = {"wikiLabel": wiki, "pageLabel": page_label}
    config = RequestConfig(stub_type_allowed=True) if allow_stubs else None
    result = _run(obj, "nav", lambda c: c.navigation_feed(query), config)
    if obj.as_json:
        _echo_json(result)
        return
    _print_rows(
        f"Navigation of {wiki}",
        ["ID", "Parent", "Type", "Title"],
        [
            [item.id, item.parent, item.type, getattr(item, "title", None)]
            for item in result.items
        ],
    )


def register_commands(group: click.Group) -> None:
    for command in (wikis, pages, page, comments, versions, version, media, nav):
        group.add_command(command)
