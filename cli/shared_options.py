"""
Shared CLI Option Decorators and Helpers

Reusable Click decorators for common CLI options, plus the helpers that
turn the group-level options into an AppConfig and map errors to exit codes.
"""

import sys

import click

from memorykeeper.config import AppConfig
from memorykeeper.enhancement.errors import EnhancementError
from memorykeeper.gateways.errors import (
    ConfigurationError,
    GatewayError,
    HTTPStatusError,
    JobFailedError,
    PollTimeoutError,
    TransientNetworkError,
)
from memorykeeper.utils.logging_config import logging_config

from .help_texts import (
    CONFIGURATION_SETUP_HINT,
    CUSTOM_PROMPTS_HELP,
    ExitCodes,
)


def custom_prompts_option(help=None):
    """Decorator for the custom prompt directory option."""
    def decorator(f):
        return click.option(
            '--custom-prompts',
            type=click.Path(exists=True, file_okay=False),
            default=None,
            help=help or CUSTOM_PROMPTS_HELP
        )(f)
    return decorator


def output_option(help=None):
    """Decorator for output file options."""
    def decorator(f):
        return click.option(
            '--output', '-o',
            type=click.Path(dir_okay=False),
            default=None,
            help=help or 'Output file path (default: stdout)'
        )(f)
    return decorator


def get_app_config(ctx: click.Context) -> AppConfig:
    """Load (once per invocation) the AppConfig selected by --config."""
    obj = ctx.ensure_object(dict)
    if 'app_config' not in obj:
        try:
            obj['app_config'] = AppConfig.load_from_yaml(obj.get('config_path'))
        except ValueError as e:
            click.echo(f"❌ Configuration Error: {e}", err=True)
            sys.exit(ExitCodes.INVALID_CONFIGURATION)
        logging_config.log_configuration_details("storage", obj['app_config'].to_dict()['storage'])
    return obj['app_config']


def write_output(text: str, output: str = None) -> None:
    """Write text to the output file, or stdout when no file is given."""
    if output:
        with open(output, 'w', encoding='utf-8') as f:
            f.write(text)
            if not text.endswith("\n"):
                f.write("\n")
        click.echo(f"Saved to: {output}", err=True)
    else:
        click.echo(text)


def exit_code_for(error: BaseException) -> int:
    """Map a pipeline error to the CLI exit code."""
    if isinstance(error, EnhancementError) and error.cause is not None:
        if isinstance(error.cause, ConfigurationError):
            return ExitCodes.INVALID_CONFIGURATION
        return ExitCodes.ENHANCEMENT_FAILED
    if isinstance(error, ConfigurationError):
        return ExitCodes.INVALID_CONFIGURATION
    if isinstance(error, HTTPStatusError) and error.status in (401, 403):
        return ExitCodes.AUTHENTICATION_ERROR
    if isinstance(error, TransientNetworkError):
        return ExitCodes.NETWORK_ERROR
    if isinstance(error, (JobFailedError, PollTimeoutError)):
        return ExitCodes.JOB_FAILED
    if isinstance(error, EnhancementError):
        return ExitCodes.ENHANCEMENT_FAILED
    return ExitCodes.GENERAL_ERROR


def fail(error: BaseException, label: str) -> None:
    """Print a formatted error and exit with the mapped exit code."""
    click.echo(f"\n❌ {label}: {error}", err=True)
    if isinstance(error, ConfigurationError):
        click.echo(CONFIGURATION_SETUP_HINT, err=True)
    elif isinstance(error, GatewayError) and error.provider:
        click.echo(f"   Provider: {error.provider} ({error.kind.value})", err=True)
    sys.exit(exit_code_for(error))
