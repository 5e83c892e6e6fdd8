"""
CLI Package for Memory Keeper AI

Click group with one module per subcommand. The cli() function is the
console script entry point declared in setup.py.
"""

import os

import click
from dotenv import load_dotenv

from memorykeeper import __version__
from memorykeeper.utils.logging_config import configure_logging

# Load environment variables from .env files
# Priority: .env.dev (if exists) overrides .env
if os.path.exists('.env.dev'):
    load_dotenv('.env.dev')
elif os.path.exists('.env'):
    load_dotenv('.env')

from .enhance import enhance
from .help_texts import CONFIG_HELP, LOG_FILE_HELP, LOG_LEVEL_HELP, MAIN_HELP
from .prompt import chat, daily_prompt
from .transcribe import transcribe


@click.group(help=MAIN_HELP)
@click.version_option(version=__version__, prog_name='memory-keeper')
@click.option('--config', '-c', 'config_path', type=click.Path(dir_okay=False), default=None,
              help=CONFIG_HELP)
@click.option('--log-level', type=click.Choice(['debug', 'info', 'warning', 'error'],
                                               case_sensitive=False),
              default='info', help=LOG_LEVEL_HELP)
@click.option('--log-file', type=click.Path(dir_okay=False), default=None, help=LOG_FILE_HELP)
@click.pass_context
def main(ctx, config_path, log_level, log_file):
    configure_logging(level=log_level.lower(), log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path


# Register subcommands
main.add_command(enhance)
main.add_command(transcribe)
main.add_command(daily_prompt)
main.add_command(chat)


# Entry point for setup.py console script
def cli():
    """Console script entry point."""
    main()
