"""
Transcribe Subcommand Module

Uploads an audio recording to AssemblyAI, polls the transcript job until it
finishes and prints (or saves) the transcript text.
"""

import logging

import click

from memorykeeper.gateways.errors import GatewayError
from memorykeeper.gateways.factory import GatewayFactory
from memorykeeper.utils.logging_config import logging_config

from .help_texts import TRANSCRIBE_HELP, TRANSCRIBE_INPUT_HELP, TRANSCRIBE_OUTPUT_HELP
from .shared_options import fail, get_app_config, output_option, write_output


logger = logging.getLogger(__name__)


@click.command(help=TRANSCRIBE_HELP)
@click.option('--input', '-i', 'input_path', required=True,
              type=click.Path(exists=True, dir_okay=False), help=TRANSCRIBE_INPUT_HELP)
@output_option(help=TRANSCRIBE_OUTPUT_HELP)
@click.pass_context
def transcribe(ctx, input_path, output):
    """
    Transcribe an audio recording.

    Examples:
        memory-keeper transcribe --input grandpa.mp3
        memory-keeper transcribe -i grandpa.mp3 -o grandpa.txt
    """
    config = get_app_config(ctx)

    try:
        gateway = GatewayFactory(config).create_transcription_gateway()
        click.echo(f"Transcribing {input_path} (polling every "
                   f"{config.assemblyai.poll_interval}s)...", err=True)
        with logging_config.timed_operation("Transcription"):
            text = gateway.invoke(input_path)
    except GatewayError as e:
        logger.debug("Transcription failed", exc_info=True)
        fail(e, "Transcription failed")

    write_output(text, output)
