"""
Main CLI entry point for PageAdvisor
"""

import logging

import click

from .. import __version__
from ..core.observability import setup_logfire
from .impact import impact_group
from .suggestions import suggestions_group


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    PageAdvisor - AI suggestions for landing pages

    Generate content suggestions from page analytics and measure
    whether implemented suggestions improved the page.
    """
    setup_logfire(service_name="pageadvisor-cli")


# Register command groups
cli.add_command(suggestions_group)
cli.add_command(impact_group)


if __name__ == '__main__':
    cli()
