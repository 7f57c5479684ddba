"""
Suggestion CLI Commands

Generate AI suggestions for a landing page and list existing ones.
"""

import asyncio
import logging
from typing import Optional
from uuid import UUID

import click

from ..core.exceptions import AnalysisFailed, InputTooLarge, PageAdvisorError
from ..services.suggestion_engine.models import AnalysisType, SuggestionStatus
from ..services.suggestion_engine.suggestion_generator import SuggestionGenerator
from ..services.suggestion_engine.suggestion_service import SuggestionService

logger = logging.getLogger(__name__)


@click.group(name="suggestions")
def suggestions_group():
    """Generate and review landing page suggestions."""
    pass


@suggestions_group.command(name="analyze")
@click.option("--user", "user_id", type=click.UUID, required=True, help="Page owner user id")
@click.option("--page", "page_id", type=click.UUID, required=True, help="Landing page id")
@click.option(
    "--type", "analysis_type",
    type=click.Choice([t.value for t in AnalysisType]),
    default=AnalysisType.FULL.value,
    show_default=True,
    help="Analysis type",
)
@click.option("--force", is_flag=True, help="Run even if an analysis ran recently")
def analyze_page(user_id: UUID, page_id: UUID, analysis_type: str, force: bool):
    """
    Analyze a landing page and save up to 3 new suggestions.

    Example:
        pageadvisor suggestions analyze --user <uuid> --page <uuid>
    """
    asyncio.run(_analyze(user_id, page_id, analysis_type, force))


async def _analyze(user_id: UUID, page_id: UUID, analysis_type: str, force: bool):
    """Async implementation of analyze"""
    try:
        generator = SuggestionGenerator()

        if not force:
            last_run = await generator.has_recent_analysis(user_id, page_id, analysis_type)
            if last_run:
                click.echo(f"ℹ️  Analysis already ran at {last_run.isoformat()} (use --force to rerun)")
                return

        click.echo(f"🔍 Analyzing page {page_id} ({analysis_type})...")
        result = await generator.analyze(user_id, page_id, analysis_type, trigger_event="cli")

        if result.snapshot.is_default:
            click.echo("⚠️  Analytics unavailable, suggestions are based on defaults")

        click.echo(f"✅ {len(result.suggestions)} suggestions saved "
                   f"({result.tokens_used} tokens, {result.processing_time_ms}ms)")
        for suggestion in result.suggestions:
            click.echo(f"\n[{suggestion.priority.value.upper()}] {suggestion.title}")
            click.echo(f"   Section: {suggestion.target_section or 'general'}")
            click.echo(f"   {suggestion.description}")

    except InputTooLarge as e:
        click.echo(f"❌ {e}", err=True)
        raise click.Abort()
    except AnalysisFailed as e:
        click.echo(f"❌ Analysis failed during {e.stage}: {e.cause}", err=True)
        if e.partial:
            click.echo(f"   Session {e.session_id} was saved without suggestions", err=True)
        logger.exception(e)
        raise click.Abort()
    except PageAdvisorError as e:
        click.echo(f"❌ Error: {e}", err=True)
        logger.exception(e)
        raise click.Abort()


@suggestions_group.command(name="list")
@click.option("--user", "user_id", type=click.UUID, required=True, help="Page owner user id")
@click.option("--page", "page_id", type=click.UUID, required=True, help="Landing page id")
@click.option("--status", type=click.Choice([s.value for s in SuggestionStatus]), help="Filter by status")
@click.option("--limit", type=int, default=20, show_default=True, help="Maximum suggestions to show")
def list_suggestions(user_id: UUID, page_id: UUID, status: Optional[str], limit: int):
    """
    List suggestions for a landing page, newest first.

    Example:
        pageadvisor suggestions list --user <uuid> --page <uuid> --status pending
    """
    try:
        suggestions = SuggestionService().get_suggestions(user_id, page_id, status=status, limit=limit)
    except PageAdvisorError as e:
        click.echo(f"❌ Error: {e}", err=True)
        logger.exception(e)
        raise click.Abort()

    if not suggestions:
        click.echo("No suggestions found")
        return

    for suggestion in suggestions:
        created = suggestion.created_at.strftime("%Y-%m-%d") if suggestion.created_at else "-"
        click.echo(
            f"{suggestion.id}  {created}  {suggestion.status.value:<11} "
            f"{suggestion.priority.value:<6} {suggestion.title}"
        )
