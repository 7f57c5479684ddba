"""
Impact CLI Commands

Measure implemented suggestions and report on their impact.
`impact measure` is meant to be run periodically (e.g. from cron).
"""

import asyncio
import logging
from typing import Optional
from uuid import UUID

import click

from ..core.exceptions import PageAdvisorError
from ..services.suggestion_engine.impact_service import TIMEFRAME_DAYS, ImpactOrchestrator

logger = logging.getLogger(__name__)


@click.group(name="impact")
def impact_group():
    """Measure the impact of implemented suggestions."""
    pass


@impact_group.command(name="measure")
@click.option("--user", "user_id", type=click.UUID, required=True, help="Page owner user id")
@click.option("--page", "page_id", type=click.UUID, help="Only this landing page")
@click.option("--implementation", "implementation_id", type=click.UUID,
              help="Measure a single implementation now, regardless of age")
def measure(user_id: UUID, page_id: Optional[UUID], implementation_id: Optional[UUID]):
    """
    Measure eligible implementations (at least 7 days old, not yet measured).

    Examples:
        pageadvisor impact measure --user <uuid>
        pageadvisor impact measure --user <uuid> --implementation <uuid>
    """
    asyncio.run(_measure(user_id, page_id, implementation_id))


async def _measure(user_id: UUID, page_id: Optional[UUID], implementation_id: Optional[UUID]):
    """Async implementation of measure"""
    try:
        orchestrator = ImpactOrchestrator()

        if implementation_id:
            measurement = await orchestrator.measure_implementation_impact(implementation_id)
            click.echo(f"✅ {implementation_id}: "
                       f"{measurement.improvement.overall_improvement:.1f}% overall "
                       f"({measurement.confidence.value} confidence)")
            for insight in measurement.insights:
                click.echo(f"   - {insight}")
            return

        batch = await orchestrator.measure_pending_impacts(user_id, page_id)
        click.echo(f"📊 Measured {batch.measured}, failed {batch.failed}")
        for detail in batch.details:
            if detail.success:
                click.echo(f"   ✅ {detail.implementation_id}: {detail.overall_improvement:.1f}% "
                           f"({detail.confidence.value})")
            else:
                click.echo(f"   ❌ {detail.implementation_id}: {detail.error}")

    except PageAdvisorError as e:
        click.echo(f"❌ Error: {e}", err=True)
        logger.exception(e)
        raise click.Abort()


@impact_group.command(name="summary")
@click.option("--user", "user_id", type=click.UUID, required=True, help="Page owner user id")
@click.option("--page", "page_id", type=click.UUID, required=True, help="Landing page id")
def summary(user_id: UUID, page_id: UUID):
    """Show aggregate impact for a landing page."""
    try:
        result = ImpactOrchestrator().get_impact_summary(user_id, page_id)
    except PageAdvisorError as e:
        click.echo(f"❌ Error: {e}", err=True)
        logger.exception(e)
        raise click.Abort()

    click.echo(f"Measured implementations: {result.total_measured_implementations}")
    click.echo(f"Average improvement:      {result.average_improvement:.1f}%")
    click.echo(f"Best / worst:             {result.best_improvement:.1f}% / {result.worst_improvement:.1f}%")
    click.echo(f"Success rate:             {result.success_rate:.0f}%")
    click.echo(f"Pending measurements:     {result.pending_measurements}")
    for insight in result.insights:
        click.echo(f"   - {insight}")


@impact_group.command(name="compare")
@click.option("--user", "user_id", type=click.UUID, required=True, help="Page owner user id")
@click.option("--page", "page_id", type=click.UUID, required=True, help="Landing page id")
@click.option("--timeframe", type=click.Choice(list(TIMEFRAME_DAYS)), default="month", show_default=True)
def compare(user_id: UUID, page_id: UUID, timeframe: str):
    """Rank measured implementations by overall improvement."""
    try:
        result = ImpactOrchestrator().compare_implementations(user_id, page_id, timeframe)
    except PageAdvisorError as e:
        click.echo(f"❌ Error: {e}", err=True)
        logger.exception(e)
        raise click.Abort()

    def _title(item):
        ref = item.implementation.suggestion
        return (ref.title if ref else None) or str(item.implementation.suggestion_id)

    click.echo("🏆 Best performing:")
    for item in result.best_performing:
        click.echo(f"   {item.improvement:+.1f}%  [{item.category}] {_title(item)}")
    click.echo("📉 Worst performing:")
    for item in result.worst_performing:
        click.echo(f"   {item.improvement:+.1f}%  [{item.category}] {_title(item)}")
    click.echo("By category:")
    for category in result.category_averages:
        click.echo(f"   {category.category}: {category.average_improvement:.1f}% ({category.count})")
    for insight in result.insights:
        click.echo(f"   - {insight}")
