from __future__ import annotations

import sys

import typer
from rich.console import Console

from rowmapper.config import get_settings
from rowmapper.domain.models import Article
from rowmapper.orm import Mapper, ORMError, RichQueryLogger
from rowmapper.utils.logging import configure_logging, get_logger

app = typer.Typer(help="rowmapper CLI.")
log = get_logger(__name__)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pool=({settings.db_pool_min_size},{settings.db_pool_max_size}) "
        f"prepare_threshold={settings.db_prepare_threshold}"
    )


@app.command()
def example(
    article_id: int = typer.Option(2, "--id", help="Article id to look up."),
    repeat: int = typer.Option(10, "--repeat", "-n", help="How many times to run the lookup."),
    title: str = typer.Option("Hey!!", "--title", help="Title of the article to save."),
    text: str = typer.Option("A test.", "--text", help="Text of the article to save."),
) -> None:
    """
    Look an article up repeatedly (warming the statement cache), then save a new one.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    console = Console()

    query_logger = RichQueryLogger(label="Article") if settings.log_queries else None
    try:
        db = Mapper.connect(settings, query_logger=query_logger)
    except ORMError as exc:
        typer.echo(f"Could not connect: {exc}", err=True)
        raise typer.Exit(code=1)

    with db:
        article = Article()
        for _ in range(repeat):
            try:
                db.find(article, article_id)
            except ORMError as exc:
                log.warning(str(exc))

        new_article = Article(title=title, text=text)
        try:
            db.save(new_article)
        except ORMError as exc:
            typer.echo(f"Save failed: {exc}", err=True)
            raise typer.Exit(code=1)
        console.print(new_article)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
