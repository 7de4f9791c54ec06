"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import sys
import click
from functools import wraps
from typing import Any, Dict

from .config import load_config, configure_logging, logger
from .exit_codes import (
    INTERRUPTED,
    get_exit_code_for_exception, CommandError
)
from .errors import DocketError


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Loads configuration and passes it as `config`
    - Applies the configured log level (--verbose forces DEBUG)
    - Consistent error handling with meaningful exit codes

    Errors are printed to stderr, or as a JSON object on stdout when the
    command was asked for JSON output.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        verbose = kwargs.pop('verbose', False)
        output_json = kwargs.get('output_json', False)

        config = load_config()
        configure_logging(config, verbose=verbose)
        kwargs['config'] = config

        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo("Interrupted", err=True)
            sys.exit(INTERRUPTED)
        except click.ClickException:
            raise
        except Exception as e:
            if not isinstance(e, (CommandError, DocketError)):
                logger.debug("Unexpected failure", exc_info=True)
            exit_code = get_exit_code_for_exception(e)
            _report_error(e, exit_code, output_json)
            sys.exit(exit_code)

    return wrapper


def _report_error(error: Exception, exit_code: int, output_json: bool) -> None:
    if not output_json:
        click.echo(f"Error: {error}", err=True)
        return

    error_obj: Dict[str, Any] = {
        "error": str(error),
        "type": type(error).__name__,
        "exit_code": exit_code,
    }
    # Add extra fields for PartialSuccessError
    if hasattr(error, 'succeeded'):
        error_obj['succeeded'] = error.succeeded
        error_obj['failed'] = error.failed
    print(json.dumps(error_obj, ensure_ascii=False), flush=True)


def output_json_lines(items) -> None:
    """Print each item as one JSON line."""
    for item in items:
        print(json.dumps(item, ensure_ascii=False, default=str), flush=True)


# Standard options that many commands share
common_options = {
    'verbose': click.option('-v', '--verbose', is_flag=True,
                           help='Show debug logging'),
    'json': click.option('--json', 'output_json', is_flag=True,
                        help='Output as JSONL (default: pretty table)'),
    'prerelease': click.option('--prerelease', 'include_prerelease', is_flag=True,
                              help='Include pre-release versions'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('verbose', 'json')
        def my_command(verbose, output_json):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator
