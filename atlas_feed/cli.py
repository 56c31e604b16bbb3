"""
Command-line interface for atlas_feed.

Uses Typer for commands and Rich for table output. Supports loading .env
files for provider API keys (NEWS_API_KEY, TMDB_API_KEY).
"""

from __future__ import annotations

from dataclasses import replace
import json
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
import typer

from .config import AppConfig, load_config
from .core.taxonomy import Provider, all_topics, parse_topics, topic_info
from .core.types import FeedPage
from .errors import AtlasError
from .orchestrator import FeedOrchestrator
from .preferences import EngagementScorer, PreferenceStore, build_backend
from .providers.factory import resolve_provider
from .utils.logging import setup_logging

app = typer.Typer(add_completion=False, help="Aggregate news, media and social content into one feed.")
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", exists=True, help="YAML config file.")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level.")


def _load(config: Path | None, log_level: str | None = None) -> AppConfig:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    setup_logging(cfg.logging, Path(cfg.store.path).expanduser())
    return cfg


def _store(cfg: AppConfig) -> PreferenceStore:
    try:
        return PreferenceStore(build_backend(cfg.store))
    except AtlasError as exc:
        _fail(exc)


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(code=1)


def _split(values: list[str] | None) -> list[str]:
    parts: list[str] = []
    for value in values or []:
        parts.extend(part.strip() for part in value.split(",") if part.strip())
    return parts


def _providers(sources: list[str] | None) -> list[Provider] | None:
    names = _split(sources)
    if not names:
        return None
    try:
        return [resolve_provider(name) for name in names]
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _render(feed: FeedPage, title: str) -> None:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Source")
    table.add_column("Topic")
    table.add_column("Title", overflow="fold")
    table.add_column("Published")
    table.add_column("Score", justify="right")
    offset = (feed.page - 1) * feed.page_size
    for index, item in enumerate(feed.items, start=offset + 1):
        meta = topic_info(item.primary_topic)
        table.add_row(
            str(index),
            item.provider.value,
            f"{meta.icon} {meta.label}",
            item.title,
            item.published_at.strftime("%Y-%m-%d %H:%M"),
            "" if item.engagement_score is None else str(item.engagement_score),
        )
    console.print(table)

    for status in feed.provider_statuses:
        if status.ok:
            line = f"[green]{status.provider.value}[/green] {status.count} items in {status.duration_ms:.0f} ms"
            if status.message:
                line += f" [yellow]({status.message})[/yellow]"
        else:
            line = f"[red]{status.provider.value}[/red] {status.error.value}: {status.message}"
        console.print(line)
    more = "more available" if feed.has_more else "end of feed"
    console.print(f"Page {feed.page}, {len(feed.items)} of {feed.total} items, {more}")


@app.command()
def feed(
    topics: list[str] = typer.Option(None, "--topic", "-t", help="Topic id(s); overrides saved topics."),
    sources: list[str] = typer.Option(None, "--source", "-s", help="Provider(s) to query."),
    sort: str | None = typer.Option(None, "--sort", help="date, score or relevance."),
    page: int = typer.Option(1, "--page", "-p", min=1),
    page_size: int | None = typer.Option(None, "--page-size", "-n", min=1),
    as_json: bool = typer.Option(False, "--json", help="Print the page as JSON."),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Show one page of the personalized feed."""
    cfg = _load(config, log_level)
    prefs = _store(cfg).load()
    if topics:
        selected = parse_topics(_split(topics))
        if not selected:
            raise typer.BadParameter("No known topics given. Run 'atlas-feed topics' for the list.")
        prefs = replace(prefs, topics=selected)

    orchestrator = FeedOrchestrator.from_config(cfg)
    try:
        result = orchestrator.get_feed(
            prefs,
            page=page,
            page_size=page_size,
            sort=sort,
            provider_filter=_providers(sources),
        )
    except AtlasError as exc:
        _fail(exc)

    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
    else:
        _render(result, "Your feed")


@app.command()
def trending(
    limit: int | None = typer.Option(None, "--limit", "-n", min=1),
    sources: list[str] = typer.Option(None, "--source", "-s", help="Provider(s) to query."),
    as_json: bool = typer.Option(False, "--json", help="Print the page as JSON."),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Show what is trending across providers, highest score first."""
    cfg = _load(config, log_level)
    prefs = _store(cfg).load()
    orchestrator = FeedOrchestrator.from_config(cfg)
    try:
        result = orchestrator.get_trending(
            page_size=limit,
            provider_filter=_providers(sources),
            include_adult=prefs.show_adult_content,
        )
    except AtlasError as exc:
        _fail(exc)

    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
    else:
        _render(result, "Trending")


@app.command()
def topics():
    """List every topic in the taxonomy."""
    table = Table(title="Topics")
    table.add_column("Id")
    table.add_column("Label")
    table.add_column("Color")
    for topic in all_topics():
        table.add_row(topic["id"], f"{topic['icon']} {topic['label']}", topic["color"])
    console.print(table)


@app.command()
def recommend(
    limit: int = typer.Option(5, "--limit", "-n", min=1),
    config: Path | None = ConfigOption,
):
    """Show topics recommended from engagement history."""
    cfg = _load(config)
    scorer = EngagementScorer(_store(cfg))
    stats = {s.topic: s for s in scorer.compute_topic_engagement()}

    table = Table(title="Recommended topics")
    table.add_column("Topic")
    table.add_column("Views", justify="right")
    table.add_column("Clicks", justify="right")
    table.add_column("Favorites", justify="right")
    table.add_column("Score", justify="right")
    for topic in scorer.recommend_topics(limit):
        s = stats[topic]
        table.add_row(topic.value, str(s.views), str(s.clicks), str(s.favorites), str(s.score))
    console.print(table)


@app.command()
def learn(config: Path | None = ConfigOption):
    """Replace saved topics with ones learned from engagement history."""
    cfg = _load(config)
    store = _store(cfg)
    if EngagementScorer(store).learn_preferences():
        learned = ", ".join(t.value for t in store.load().topics)
        console.print(f"Topics updated: {learned}")
    else:
        console.print("Not enough engagement history to learn from (or auto-learn is off).")


@app.command()
def history(
    limit: int = typer.Option(20, "--limit", "-n", min=1),
    clear: bool = typer.Option(False, "--clear", help="Delete all engagement history."),
    config: Path | None = ConfigOption,
):
    """Show or clear engagement history."""
    cfg = _load(config)
    store = _store(cfg)
    if clear:
        store.clear_history()
        console.print("History cleared.")
        return

    entries = store.load_history(limit)
    if not entries:
        console.print("No history recorded.")
        return
    table = Table(title="History")
    table.add_column("When")
    table.add_column("Type")
    table.add_column("Content")
    table.add_column("Topics")
    for entry in entries:
        table.add_row(
            entry.occurred_at.strftime("%Y-%m-%d %H:%M"),
            entry.engagement_type.value,
            entry.content_id,
            ", ".join(t.value for t in entry.topics),
        )
    console.print(table)


if __name__ == "__main__":
    app()
