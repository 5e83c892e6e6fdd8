"""
Enhance Subcommand Module

Runs the story enhancement pipeline on a transcript file and prints the
result as JSON. By default the command waits for the illustration so the
written JSON includes ``image_url``.
"""

import logging
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path

import click
from pydantic import ValidationError

from memorykeeper.enhancement.errors import EnhancementError
from memorykeeper.enhancement.orchestrator import EnhancementOrchestrator
from memorykeeper.enhancement.prompts.loader import PromptLoader
from memorykeeper.enhancement.schemas import EnhancementRequest
from memorykeeper.gateways.errors import ConfigurationError
from memorykeeper.gateways.factory import GatewayFactory
from memorykeeper.storage.base import create_blob_store

from .help_texts import (
    ENHANCE_ANSWERS_HELP,
    ENHANCE_HELP,
    ENHANCE_IMAGE_TIMEOUT_HELP,
    ENHANCE_INPUT_HELP,
    ENHANCE_OUTPUT_HELP,
    ENHANCE_WAIT_HELP,
    ExitCodes,
)
from .shared_options import custom_prompts_option, fail, get_app_config, output_option, write_output


logger = logging.getLogger(__name__)


def build_orchestrator(config, custom_prompts=None) -> EnhancementOrchestrator:
    """Create the orchestrator for the CLI from configuration."""
    orchestrator = EnhancementOrchestrator.from_config(
        config,
        factory=GatewayFactory(config),
        blob_store=create_blob_store(config.storage)
    )
    if custom_prompts:
        orchestrator.prompt_loader = PromptLoader(custom_prompts_dir=Path(custom_prompts))
    return orchestrator


@click.command(help=ENHANCE_HELP)
@click.option('--input', '-i', 'input_file', required=True, type=click.File('r', encoding='utf-8'),
              help=ENHANCE_INPUT_HELP)
@click.option('--answers', '-a', type=click.File('r', encoding='utf-8'), default=None,
              help=ENHANCE_ANSWERS_HELP)
@output_option(help=ENHANCE_OUTPUT_HELP)
@click.option('--wait-image/--no-wait-image', default=True, help=ENHANCE_WAIT_HELP)
@click.option('--image-timeout', type=float, default=300.0, show_default=True,
              help=ENHANCE_IMAGE_TIMEOUT_HELP)
@custom_prompts_option()
@click.pass_context
def enhance(ctx, input_file, answers, output, wait_image, image_timeout, custom_prompts):
    """
    Enhance a memory transcript.

    Examples:
        memory-keeper enhance --input grandma.txt
        memory-keeper enhance -i grandma.txt -a answers.txt -o story.json
        cat grandma.txt | memory-keeper enhance -i - --no-wait-image
    """
    config = get_app_config(ctx)

    try:
        request = EnhancementRequest(
            transcript=input_file.read(),
            supplemental_answers=answers.read() if answers else None
        )
    except ValidationError as e:
        click.echo(f"❌ Invalid transcript: {e.errors()[0]['msg']}", err=True)
        ctx.exit(ExitCodes.MISSING_REQUIRED_OPTION)

    try:
        orchestrator = build_orchestrator(config, custom_prompts)
    except ConfigurationError as e:
        fail(e, "Configuration Error")

    with orchestrator:
        try:
            handle = orchestrator.enhance(request)
        except EnhancementError as e:
            logger.debug("Enhancement failed", exc_info=True)
            fail(e, "Enhancement Error")

        if wait_image:
            try:
                handle.wait_for_image(timeout=image_timeout)
            except FuturesTimeoutError:
                click.echo(f"⚠️  Illustration not ready after {image_timeout}s; "
                           f"writing result without it", err=True)
                handle.cancel()

        result = handle.snapshot()
        if not wait_image:
            # do not block on a still-running image leg when leaving the context
            handle.cancel()

    write_output(result.model_dump_json(indent=2), output)
