import asyncio
import logging
from pathlib import Path
from typing import Optional

import aiosqlite
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.table import Table

from ethos_spider.errors import EthosSpiderError

load_dotenv()
app = typer.Typer()
console = Console()


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _fail(exc: EthosSpiderError) -> None:
    console.print(f"[bold red]Error:[/] {exc.message}")
    if exc.details:
        console.print(f"[dim]{exc.details}[/]")
    raise typer.Exit(1)


@app.command()
def search(
    query: str = typer.Argument(help="Name, username or address to search for"),
    limit: int = typer.Option(10, "--limit", "-l", help="Maximum number of results"),
):
    from ethos_spider.fetchers.ethos import search_profiles

    try:
        with console.status("[bold green]Searching Ethos..."):
            data = asyncio.run(search_profiles(query, limit))
    except EthosSpiderError as exc:
        _fail(exc)

    values = (data.get("data") or {}).get("values") or []
    if not values:
        console.print(f"[dim]No profiles match '{query}'[/]")
        return

    table = Table("Username", "Name", "Score", "Userkey")
    for v in values:
        table.add_row(f"@{v.get('username') or ''}", v.get("name") or "", str(v.get("score", "")), v.get("userkey", ""))
    console.print(table)


@app.command()
def analyze(
    username: str = typer.Argument(help="Ethos username, with or without @"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save report to file instead of printing"),
    debug: bool = typer.Option(False, "--debug", help="Log requests and print the prompt sent to the LLM"),
):
    """Fetch a profile's reviews and vouches and score them with the LLM."""
    from ethos_spider.analyzers.profile import analyze_profile
    from ethos_spider.analyzers.prompt import build_prompts
    from ethos_spider.api.cache import AnalysisCache
    from ethos_spider.config import cache_db_path, openrouter_api_key
    from ethos_spider.fetchers.ethos import collect_activities, find_profile
    from ethos_spider.formatter import format_report
    from ethos_spider.models import Activity

    _setup_logging(debug)
    username = username.lstrip("@")

    try:
        with console.status(f"[bold green]Looking up @{username}..."):
            user = asyncio.run(find_profile(username))

        with console.status("[bold green]Fetching reviews and vouches..."):
            raw = asyncio.run(collect_activities(user.userkey))
        activities = [Activity.model_validate(a) for a in raw]
        console.print(f"[dim]Collected {len(activities)} reviews and vouches for @{user.username}[/]")

        if debug and activities:
            system_prompt, user_prompt = build_prompts(activities)
            console.rule("[bold yellow]System prompt")
            console.print(system_prompt)
            console.rule("[bold yellow]User prompt")
            console.print(user_prompt)
            console.rule()

        with console.status("[bold green]Scoring with the LLM..."):
            analysis = asyncio.run(analyze_profile(user.userkey, activities, api_key=openrouter_api_key()))
    except EthosSpiderError as exc:
        _fail(exc)

    try:
        asyncio.run(AnalysisCache(cache_db_path()).put(user.username or username, user.name or username, analysis))
    except (aiosqlite.Error, OSError) as exc:
        console.print(f"[yellow]Warning:[/] could not cache analysis: {exc}")

    md = format_report(user, analysis)
    if output:
        output.write_text(md)
        console.print(f"[bold green]✓[/] Report saved to [cyan]{output}[/]")
    else:
        console.print(Markdown(md))


@app.command("og-image")
def og_image(
    username: str = typer.Argument(help="Ethos username, with or without @"),
    output: Path = typer.Option(Path("og-image.svg"), "--output", "-o", help="Where to write the SVG"),
):
    """Render the social-preview SVG from the cached analysis (or the fallback card)."""
    from ethos_spider.api.cache import AnalysisCache
    from ethos_spider.config import cache_db_path
    from ethos_spider.render.og_image import render_preview

    username = username.lstrip("@")
    cached = asyncio.run(AnalysisCache(cache_db_path()).get(username))
    if cached:
        svg = render_preview(username, cached["name"] or username, cached["analysis"].get("results") or {})
    else:
        console.print(f"[dim]No cached analysis for @{username}, rendering fallback[/]")
        svg = render_preview(username, username, None)

    output.write_text(svg)
    console.print(f"[bold green]✓[/] Image saved to [cyan]{output}[/]")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("ethos_spider.api.server:app", host=host, port=port)


if __name__ == "__main__":
    app()
