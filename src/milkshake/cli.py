"""Command-line interface for managing a Milkshake page store."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.tree import Tree

from .config import MilkshakeConfig, ensure_config
from .errors import MilkshakeError
from .pages.models import NEWEST_FIRST, Page
from .pages.navigation import TreeNavigator
from .pages.propagation import CascadeReport
from .pages.store import PageStore
from .render.converters import ContentConverter
from .render.helpers import page_title
from .site import PageForm, SiteService

app = typer.Typer(help="Manage a tree of Markdown pages with slug-derived permalinks.")
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def _configure_logging(verbosity: int) -> None:
    """Attach a rich stderr handler to the ``milkshake`` logger.

    Verbosity 0 logs warnings, 1 adds info and 2 or more adds debug output.
    """

    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    app_logger = logging.getLogger("milkshake")
    app_logger.setLevel(level)
    handler = next((h for h in app_logger.handlers if isinstance(h, RichHandler)), None)
    if handler is None:
        handler = RichHandler(console=err_console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        app_logger.addHandler(handler)
    handler.setLevel(level)


@contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except MilkshakeError as exc:
        err_console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc


def _config(ctx: typer.Context) -> MilkshakeConfig:
    return ctx.obj["config"]


def _open_store(ctx: typer.Context) -> PageStore:
    path = _config(ctx).store.path
    logger.debug("Opening page store at %s", path)
    return PageStore(path)


def _status(page: Page) -> str:
    return "published" if page.is_published else "draft"


def _format_pages(pages: list[Page], *, title: str) -> None:
    table = Table(title=title)
    table.add_column("ID", justify="right")
    table.add_column("Permalink")
    table.add_column("Title")
    table.add_column("Position", justify="right")
    table.add_column("Status")
    for page in pages:
        table.add_row(str(page.id), page.permalink, page.title, str(page.position), _status(page))
    console.print(table)


def _format_report(report: CascadeReport) -> None:
    descendants = [change for change in report.changes if change.page_id != report.page.id]
    if descendants:
        console.print(f"Updated {len(descendants)} descendant permalink(s).")
    if report.failure is not None:
        err_console.print(
            f"[yellow]Warning:[/yellow] cascade stopped at page {report.failure.page_id}: "
            f"{report.failure.error}"
        )


def _read_content(
    content: Optional[str],
    file: Optional[Path],
    html: Optional[Path],
) -> Optional[str]:
    if sum(value is not None for value in (content, file, html)) > 1:
        raise typer.BadParameter("Use only one of --content, --file and --html")
    if file is not None:
        return file.read_text(encoding="utf-8")
    if html is not None:
        return ContentConverter().html_to_markdown(html.read_text(encoding="utf-8"))
    return content


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a configuration TOML file",
    ),
    store_path: Optional[Path] = typer.Option(
        None,
        "--store",
        "-s",
        help="Directory holding the page store",
    ),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase log output"),
) -> None:
    _configure_logging(verbose)
    with _handle_errors():
        config = ensure_config(store_path=store_path, config_path=config_path)
    ctx.obj = {"config": config}


@app.command()
def init(
    ctx: typer.Context,
    title: str = typer.Option("Home", "--title", "-t", help="Title of the first root page"),
    publish: bool = typer.Option(True, "--publish/--draft", help="Publish the first page"),
) -> None:
    """Create a page store with a single root page."""

    config = _config(ctx)
    store = _open_store(ctx)
    if len(store):
        raise typer.BadParameter(f"{config.store.path} already contains pages")
    with _handle_errors():
        page = store.create(title=title, published_at=store.clock() if publish else None)
    console.print(f"Initialized page store at [bold]{config.store.path}[/bold] with /{page.permalink}.")


@app.command()
def new(
    ctx: typer.Context,
    title: str = typer.Option(..., "--title", "-t", help="Page title"),
    parent_id: Optional[int] = typer.Option(None, "--parent", "-p", help="Id of the parent page"),
    content: Optional[str] = typer.Option(None, "--content", help="Markdown content"),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="Read Markdown content from a file"
    ),
    html: Optional[Path] = typer.Option(
        None, "--html", exists=True, dir_okay=False, help="Import content from an HTML file"
    ),
    position: Optional[int] = typer.Option(None, "--position", help="Order among siblings"),
    show_title: bool = typer.Option(True, "--show-title/--hide-title", help="Display the title"),
    publish: bool = typer.Option(False, "--publish", help="Publish immediately"),
) -> None:
    """Create a page."""

    body = _read_content(content, file, html)
    site = SiteService(_open_store(ctx), is_admin=lambda: True)
    with _handle_errors():
        draft = site.new_page(parent_id)
        page = site.create_page(
            PageForm(
                title=title,
                content=body if body is not None else draft.content,
                parent_id=parent_id,
                position=position,
                show_title=show_title,
                publish=publish,
            )
        )
    console.print(f"Created page {page.id} at [bold]{page.path}[/bold] ({_status(page)}).")


@app.command()
def edit(
    ctx: typer.Context,
    page_id: int = typer.Argument(..., help="Id of the page to edit"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    parent_id: Optional[int] = typer.Option(None, "--parent", "-p", help="Move under this page"),
    to_root: bool = typer.Option(False, "--root", help="Move the page to the top level"),
    content: Optional[str] = typer.Option(None, "--content", help="New Markdown content"),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="Read Markdown content from a file"
    ),
    html: Optional[Path] = typer.Option(
        None, "--html", exists=True, dir_okay=False, help="Import content from an HTML file"
    ),
    position: Optional[int] = typer.Option(None, "--position", help="Order among siblings"),
    show_title: Optional[bool] = typer.Option(
        None, "--show-title/--hide-title", help="Display the title"
    ),
) -> None:
    """Change a page and cascade its permalink to descendants."""

    if to_root and parent_id is not None:
        raise typer.BadParameter("--root and --parent are mutually exclusive")
    body = _read_content(content, file, html)

    fields: dict[str, object] = {}
    if title is not None:
        fields["title"] = title
    if body is not None:
        fields["content"] = body
    if parent_id is not None:
        fields["parent_id"] = parent_id
    if to_root:
        fields["parent_id"] = None
    if position is not None:
        fields["position"] = position
    if show_title is not None:
        fields["show_title"] = show_title
    if not fields:
        raise typer.BadParameter("Nothing to change")

    store = _open_store(ctx)
    with _handle_errors():
        page = store.get(page_id)
        report = store.propagator.save(replace(page, **fields))
    console.print(f"Saved page {page_id} at [bold]{report.page.path}[/bold].")
    _format_report(report)


def _set_published(ctx: typer.Context, page_id: int, publish: bool) -> Page:
    store = _open_store(ctx)
    with _handle_errors():
        page = store.get(page_id)
        if publish == page.is_published:
            return page
        return store.update(page, published_at=store.clock() if publish else None)


@app.command()
def publish(
    ctx: typer.Context,
    page_id: int = typer.Argument(..., help="Id of the page to publish"),
) -> None:
    """Make a draft page visible to guests."""

    page = _set_published(ctx, page_id, True)
    console.print(f"Page {page.id} is published.")


@app.command()
def unpublish(
    ctx: typer.Context,
    page_id: int = typer.Argument(..., help="Id of the page to turn back into a draft"),
) -> None:
    """Hide a page from guests."""

    page = _set_published(ctx, page_id, False)
    console.print(f"Page {page.id} is a draft.")


@app.command()
def delete(
    ctx: typer.Context,
    page_id: int = typer.Argument(..., help="Id of the page to delete"),
    only: bool = typer.Option(
        False,
        "--only",
        help="Delete just this page and leave its children orphaned",
    ),
) -> None:
    """Delete a page and, unless --only is given, its whole subtree."""

    store = _open_store(ctx)
    with _handle_errors():
        if only:
            store.delete(store.get(page_id))
            removed = [page_id]
        else:
            removed = SiteService(store, is_admin=lambda: True).delete_page(page_id)
    console.print(f"Deleted {len(removed)} page(s).")


@app.command("list")
def list_pages(
    ctx: typer.Context,
    published: bool = typer.Option(False, "--published", help="Only published pages"),
    recent: Optional[int] = typer.Option(
        None, "--recent", min=0, help="Show the N newest pages"
    ),
    parent_id: Optional[int] = typer.Option(None, "--parent", "-p", help="Children of this page"),
) -> None:
    """List pages in position order."""

    store = _open_store(ctx)
    only_published = True if published else None
    if recent is not None:
        pages = store.query(published=only_published, order_by=NEWEST_FIRST, limit=recent)
        title = f"{recent} most recent pages"
    elif parent_id is not None:
        pages = store.all_children_of(parent_id, published=only_published)
        title = f"Children of page {parent_id}"
    else:
        pages = store.query(published=only_published)
        title = "Pages"
    _format_pages(pages, title=title)


@app.command()
def tree(ctx: typer.Context) -> None:
    """Print the page tree."""

    config = _config(ctx)
    store = _open_store(ctx)
    navigator = TreeNavigator(store)
    root = Tree(f"[bold]{config.site.name}[/bold]")
    stack = [(root, page) for page in reversed(store.roots())]
    while stack:
        branch, page = stack.pop()
        marker = "" if page.is_published else " [dim](draft)[/dim]"
        node = branch.add(f"{page.title} [cyan]/{page.permalink}[/cyan]{marker}")
        stack.extend((node, child) for child in reversed(navigator.children(page)))
    console.print(root)


@app.command()
def show(
    ctx: typer.Context,
    permalink: str = typer.Argument(..., help="Permalink of the page, e.g. about-us/our-team"),
    guest: bool = typer.Option(False, "--guest", help="Render as a visitor who cannot see drafts"),
) -> None:
    """Render a page, looked up by permalink, to HTML."""

    config = _config(ctx)
    site = SiteService(_open_store(ctx), is_admin=lambda: not guest)
    with _handle_errors():
        page = site.show(permalink)
        html = site.render(page)
    typer.echo(f"<!-- {page_title(config.site.name, page=page)} -->")
    typer.echo(html, nl=False)


@app.command()
def render(
    ctx: typer.Context,
    page_id: int = typer.Argument(..., help="Id of the page to render"),
) -> None:
    """Render a page, looked up by id, to HTML."""

    site = SiteService(_open_store(ctx), is_admin=lambda: True)
    with _handle_errors():
        page = site.store.get(page_id)
        html = site.render(page)
    typer.echo(html, nl=False)


def run() -> None:
    """Entry point for console scripts."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
