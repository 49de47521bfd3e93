"""
CommentLens CLI - command line interface.
"""

import asyncio
import sys
import uuid
from pathlib import Path

import click
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@click.group()
@click.version_option(version="0.1.0", prog_name="commentlens")
def main() -> None:
    """CommentLens - Comment thread to contact signals"""
    pass


@main.command()
@click.argument("url")
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="runs",
    help="Directory for session artifacts (default: runs/)",
)
@click.option("--actor", default=None, help="Identity of the caller, stored on the session")
@click.option("--no-proxies", is_flag=True, help="Never fall back to public proxies")
@click.option("--excel", is_flag=True, help="Also write participants.xlsx")
@click.option("--limit", "-n", type=int, default=20, help="Participants to print (default: 20)")
@click.option("--verbose", "-v", is_flag=True, help="Show every fetch attempt")
def analyze(
    url: str,
    output: str,
    actor: str | None,
    no_proxies: bool,
    excel: bool,
    limit: int,
    verbose: bool,
) -> None:
    """Analyze the comment thread at URL."""
    from .config import Settings
    from .errors import CommentLensError
    from .exporter import export_excel, participant_to_row
    from .pipeline import Pipeline
    from .session import JsonSessionStore, analyze_link

    try:
        settings = Settings.from_env()
    except ValueError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    if no_proxies:
        settings.use_proxies = False

    store = JsonSessionStore(Path(output))
    pipeline = Pipeline(settings, verbose=verbose)
    session_id = uuid.uuid4().hex
    run_dir = store.session_dir(session_id)

    try:
        record, outcome = asyncio.run(
            analyze_link(url, store, pipeline, actor_id=actor, session_id=session_id)
        )
    except CommentLensError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        # Audit trail of every direct/proxy attempt, kept for failed runs too
        if pipeline.fetch_log is not None:
            pipeline.fetch_log.save(run_dir / "fetch_log.json")

    if excel:
        export_excel(outcome.participants, run_dir / "participants.xlsx")

    click.echo(f"\nSession {record.session_id} ({record.source_kind})")
    click.echo(
        f"  Comments: {outcome.comments}  Participants: {len(outcome.participants)}  "
        f"Signals: {outcome.signals_found}"
    )
    for participant in outcome.participants[:limit]:
        row = participant_to_row(participant)
        click.echo(
            f"  {row['username'][:24]:<24} {row['primary_email']:<36} "
            f"{row['signal_source']:<8} {row['confidence']:>3}%"
        )
    if len(outcome.participants) > limit:
        click.echo(f"  ... {len(outcome.participants) - limit} more")

    pipeline.logger.finish(len(outcome.participants), str(run_dir))


@main.command()
@click.argument("url")
def classify(url: str) -> None:
    """Show which platform a URL belongs to."""
    from .classifier import classify as classify_url

    kind = classify_url(url)
    if kind is None:
        click.echo("unsupported", err=True)
        sys.exit(1)
    click.echo(kind)


@main.command()
def check() -> None:
    """Check which platform credentials are configured."""
    import os

    click.echo("Checking configuration...\n")

    youtube_key = os.getenv("YOUTUBE_API_KEY")
    facebook_token = os.getenv("FACEBOOK_PAGE_TOKEN")

    if youtube_key:
        click.echo(f"  YOUTUBE_API_KEY:     {youtube_key[:8]}...{youtube_key[-4:]}")
    else:
        click.echo("  YOUTUBE_API_KEY:     NOT SET (YouTube links will fail)")

    if facebook_token:
        click.echo(f"  FACEBOOK_PAGE_TOKEN: {facebook_token[:8]}...{facebook_token[-4:]}")
    else:
        click.echo("  FACEBOOK_PAGE_TOKEN: NOT SET (Facebook links return no comments)")

    click.echo("  Reddit:              no credentials needed")


if __name__ == "__main__":
    main()
