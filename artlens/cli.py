"""Typer admin CLI: one-shot analysis, tier table, API server, payments, registry artworks and history."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from artlens.core.config import get_config
from artlens.core.logging import setup_logging
from artlens.engine.errors import FatalAnalysisError, InputError
from artlens.engine.factory import build_orchestrator
from artlens.engine.orchestrator import AnalysisResult, RejectedResponse
from artlens.engine.tiers import TIERS, Tier
from artlens.repository.analysis_repo import AnalysisRepository
from artlens.repository.artwork_repo import ArtworkRepository
from artlens.repository.payment_repo import PaymentRepository

app = typer.Typer(no_args_is_help=True)
payment_app = typer.Typer(help="Record and list tier payments.")
app.add_typer(payment_app, name="payment")
artwork_app = typer.Typer(help="Manage the first-party artwork registry.")
app.add_typer(artwork_app, name="artwork")


def _get_session_factory():
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker

    cfg = get_config()
    engine = create_engine(cfg.database_url, pool_pre_ping=True)
    return sessionmaker(engine, autocommit=False, autoflush=False, expire_on_commit=False)


def _resolve_tier(name: str) -> Tier | None:
    """Match a tier by full name or first word, case-insensitive ('standard' -> Standard Pack)."""
    wanted = name.strip().lower()
    for tier in TIERS:
        if wanted in (tier.name.lower(), tier.name.split()[0].lower()):
            return tier
    return None


def _format_price(cents: int) -> str:
    return "free" if cents == 0 else f"${cents / 100:.2f}"


def _similarity_cell(percent: int) -> Text:
    s = f"{percent}%"
    if percent > 60:
        return Text(s, style="green")
    if percent > 30:
        return Text(s, style="yellow")
    return Text(s, style="red")


def _print_result(console: Console, result: AnalysisResult, files: list[Path]) -> None:
    tags = Table(title=f"{result.image_count} image(s) - {result.tier}")
    tags.add_column("Image")
    tags.add_column("Keywords")
    tags.add_column("Colors")
    tags.add_column("Style")
    tags.add_column("Mood")
    tags.add_column("Confidence")
    for path, tag_set in zip(files, result.results):
        tags.add_row(
            path.name,
            ", ".join(tag_set.keywords) or "-",
            ", ".join(tag_set.colors) or "-",
            tag_set.style or "-",
            tag_set.mood or "-",
            f"{tag_set.confidence:.2f}",
        )
    console.print(tags)

    if result.common_signal is not None:
        keywords = ", ".join(result.common_signal.keywords) or "(none)"
        console.print(f"Common keywords: {keywords}  (confidence {result.common_signal.confidence:.2f})")

    recs = Table(title="Recommendations")
    recs.add_column("Source")
    recs.add_column("Title")
    recs.add_column("Artist")
    recs.add_column("Similarity")
    recs.add_column("Matched")
    for candidate in [*result.internal, *result.external]:
        sim = candidate.similarity
        recs.add_row(
            candidate.source,
            candidate.title,
            candidate.artist,
            _similarity_cell(round(sim.total * 100) if sim else 0),
            ", ".join(sim.matched_keywords) if sim else "",
        )
    if result.internal or result.external:
        console.print(recs)
    else:
        console.print(Text("No recommendations with reachable images.", style="yellow"))
    console.print(
        f"Average similarity: {result.similarity_stats.average_similarity}%  "
        f"({result.processing_time_ms} ms)"
    )


@app.command("analyze")
def analyze(
    files: list[Path] = typer.Argument(..., help="Image files to analyze together", exists=True, dir_okay=False),
    identity: str | None = typer.Option(None, "--identity", help="Caller identity (required for paid tiers)"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable DEBUG logging to stdout"),
) -> None:
    """Analyze images as one batch and print common keywords and recommendations."""
    setup_logging()
    if verbose:
        for handler in logging.getLogger().handlers:
            if isinstance(handler, logging.StreamHandler) and handler.stream is sys.stdout:
                handler.setLevel(logging.DEBUG)

    images = [p.read_bytes() for p in files]
    orchestrator = build_orchestrator(get_config(), _get_session_factory())

    async def _run():
        try:
            return await orchestrator.analyze_batch(images, identity)
        finally:
            await orchestrator.aclose()

    try:
        result = asyncio.run(_run())
    except InputError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except FatalAnalysisError as e:
        typer.secho(f"Analysis failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    if isinstance(result, RejectedResponse):
        typer.secho(
            f"{result.error} ({result.tier.name}, {_format_price(result.tier.price_cents)})",
            fg=typer.colors.YELLOW,
            err=True,
        )
        raise typer.Exit(2)

    if as_json:
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return
    _print_result(Console(), result, files)


@app.command("tiers")
def tiers() -> None:
    """Show the tier table."""
    table = Table(title=None)
    table.add_column("Tier")
    table.add_column("Max Images")
    table.add_column("Price")
    table.add_column("Description")
    for tier in TIERS:
        table.add_row(tier.name, str(tier.max_images), _format_price(tier.price_cents), tier.description)
    Console().print(table)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(8000, "--port", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Restart on source changes (development)"),
) -> None:
    """Run the HTTP API (artlens.api.main:app) under uvicorn."""
    import uvicorn

    uvicorn.run("artlens.api.main:app", host=host, port=port, reload=reload)


@payment_app.command("add")
def payment_add(
    identity: str = typer.Argument(..., help="Caller identity the payment unlocks"),
    tier_name: str = typer.Argument(..., help="Tier name, e.g. 'Standard Pack' or 'standard'"),
    image_count: int = typer.Option(0, "--image-count", help="Images the payment was made for"),
    external_ref: str | None = typer.Option(None, "--ref", help="External payment reference (unique)"),
) -> None:
    """Record a completed payment (unlocks the tier for the payment window)."""
    tier = _resolve_tier(tier_name)
    if tier is None or tier.price_cents == 0:
        names = ", ".join(t.name for t in TIERS if t.price_cents > 0)
        typer.secho(f"Unknown paid tier '{tier_name}'. Choose one of: {names}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    repo = PaymentRepository(_get_session_factory())
    payment = repo.record_payment(
        identity.strip(),
        tier.name,
        tier.price_cents,
        image_count=image_count,
        external_ref=external_ref,
    )
    typer.echo(f"Recorded payment {payment.id}: {identity.strip()} -> {tier.name} ({_format_price(tier.price_cents)}).")


@payment_app.command("list")
def payment_list(
    identity: str = typer.Argument(..., help="Caller identity"),
    limit: int = typer.Option(20, "--limit", help="Maximum number of payments"),
) -> None:
    """List an identity's payments, newest first."""
    payments = PaymentRepository(_get_session_factory()).list_payments(identity.strip(), limit=limit)
    if not payments:
        typer.echo("No payments.")
        return
    table = Table(title=None)
    table.add_column("ID")
    table.add_column("Tier")
    table.add_column("Amount")
    table.add_column("Status")
    table.add_column("Created At")
    for p in payments:
        table.add_row(str(p.id), p.tier, _format_price(p.amount_cents), p.status.value, str(p.created_at))
    Console().print(table)


@artwork_app.command("add")
def artwork_add(
    title: str = typer.Argument(..., help="Artwork title"),
    artist: str = typer.Argument(..., help="Artist name"),
    image_url: str = typer.Argument(..., help="Public image URL"),
    keyword: list[str] = typer.Option([], "--keyword", "-k", help="Keyword (repeatable)"),
    platform: str | None = typer.Option(None, "--platform", help="Originating platform"),
    source_url: str | None = typer.Option(None, "--source-url", help="Page describing the artwork"),
) -> None:
    """Add an artwork to the registry searched by the 'registry' source."""
    if not keyword:
        typer.secho("At least one --keyword is required.", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    repo = ArtworkRepository(_get_session_factory())
    artwork = repo.add_artwork(title, artist, image_url, keyword, platform=platform, source_url=source_url)
    typer.echo(f"Added artwork {artwork.id}: '{artwork.title}' ({len(artwork.keywords or [])} keywords).")


@app.command("history")
def history(
    identity: str = typer.Argument(..., help="Caller identity"),
    limit: int = typer.Option(20, "--limit", help="Maximum number of analyses"),
) -> None:
    """Show an identity's past analyses, newest first."""
    records = AnalysisRepository(_get_session_factory()).get_user_history(identity.strip(), limit=limit)
    if not records:
        typer.echo("No analyses recorded.")
        return
    table = Table(title=None)
    table.add_column("ID")
    table.add_column("Images")
    table.add_column("Tier")
    table.add_column("Common Keywords")
    table.add_column("Recommendations")
    table.add_column("Time (ms)")
    table.add_column("Analyzer")
    table.add_column("Created At")
    for r in records:
        keywords = (r.common_signal or {}).get("keywords") or []
        table.add_row(
            str(r.id),
            str(r.image_count),
            r.tier,
            ", ".join(keywords[:5]) or "-",
            str(r.recommendation_count),
            str(r.processing_time_ms),
            r.analyzer_model or "-",
            str(r.created_at),
        )
    Console().print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
