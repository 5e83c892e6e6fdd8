"""
Prompt and Chat Subcommands

``daily-prompt`` prints a memory prompt for a category; ``chat`` answers a
question in a grandparent's voice using their recorded stories. Both only
need the text-generation gateway.
"""

import click

from memorykeeper.enhancement.orchestrator import EnhancementOrchestrator
from memorykeeper.gateways.errors import ConfigurationError
from memorykeeper.gateways.factory import GatewayFactory

from .help_texts import (
    CATEGORY_HELP,
    CHAT_HELP,
    DAILY_PROMPT_HELP,
    GRANDPARENT_NAME_HELP,
    QUESTION_HELP,
    STORY_HELP,
)
from .shared_options import fail, get_app_config


def build_text_orchestrator(config) -> EnhancementOrchestrator:
    """Orchestrator wired with the text gateway only."""
    return EnhancementOrchestrator(
        text_gateway=GatewayFactory(config).create_text_gateway(),
        settings=config.enhancement
    )


@click.command(name='daily-prompt', help=DAILY_PROMPT_HELP)
@click.argument('category', default='GENERAL')
@click.pass_context
def daily_prompt(ctx, category):
    """
    Examples:
        memory-keeper daily-prompt CHILDHOOD
    """
    config = get_app_config(ctx)
    try:
        orchestrator = build_text_orchestrator(config)
    except ConfigurationError as e:
        fail(e, "Configuration Error")

    with orchestrator:
        click.echo(orchestrator.generate_daily_prompt(category.upper()))


@click.command(help=CHAT_HELP)
@click.option('--story', '-s', 'stories', multiple=True, required=True,
              type=click.File('r', encoding='utf-8'), help=STORY_HELP)
@click.option('--question', '-q', required=True, help=QUESTION_HELP)
@click.option('--name', '-n', 'grandparent_name', default='Grandma', show_default=True,
              help=GRANDPARENT_NAME_HELP)
@click.pass_context
def chat(ctx, stories, question, grandparent_name):
    """
    Examples:
        memory-keeper chat -s bakery.txt -s wedding.txt -q "How did you meet Grandpa?"
    """
    if not question.strip():
        raise click.BadParameter("question cannot be empty", param_hint="--question")

    config = get_app_config(ctx)
    try:
        orchestrator = build_text_orchestrator(config)
    except ConfigurationError as e:
        fail(e, "Configuration Error")

    with orchestrator:
        click.echo(orchestrator.chat_with_grandparent(
            [story.read() for story in stories],
            question,
            grandparent_name=grandparent_name
        ))
