#!/usr/bin/env python3
"""
Shared CLI context, logging setup and error handling for command modules.
"""

import logging
import sys
import traceback
from functools import wraps
from typing import Any, Dict, Optional

import click

from token_registry import RegistryService
from token_registry.result import Err, RegistryError

from cli.config import ConfigurationManager
from cli.output import OutputFormatter


LOGGER_NAME = 'chain-registry'


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.profile: Optional[str] = None
        self.output_format: Optional[str] = None
        self.data_dir: Optional[str] = None
        self.verbose: int = 0
        self.config_manager: Optional[ConfigurationManager] = None
        self.logger: logging.Logger = logging.getLogger(LOGGER_NAME)
        self._registry: Optional[RegistryService] = None

    @property
    def config(self) -> Dict[str, Any]:
        if self.config_manager is None:
            self.config_manager = ConfigurationManager(self.config_file, self.profile)
        return self.config_manager.load()

    def setup_logging(self):
        """Configure logging from verbosity, falling back to logging.level."""
        config = self.config

        if self.verbose >= 2:
            level = logging.DEBUG
        elif self.verbose == 1:
            level = logging.INFO
        else:
            level = getattr(logging, str(config['logging']['level']).upper(), logging.WARNING)

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

        for name in (LOGGER_NAME, 'token_registry'):
            logger = logging.getLogger(name)
            logger.handlers = [handler]
            logger.setLevel(level)
            logger.propagate = False

    @property
    def registry(self) -> RegistryService:
        """Registry service built from storage settings on first use."""
        if self._registry is None:
            storage = self.config['storage']
            storage_dir = None
            if storage['backend'] == 'json':
                storage_dir = self.data_dir or storage['data_dir']

            self._registry = RegistryService.open(
                storage_dir=storage_dir,
                max_key_size=storage['max_key_size'],
                max_value_size=storage['max_value_size'],
                lock_timeout=storage['lock_timeout'],
            )
            self.logger.debug(f"Opened registry ({storage['backend']}) at {storage_dir}")
        return self._registry

    @property
    def formatter(self) -> OutputFormatter:
        return OutputFormatter(self.output_format or self.config['cli']['output_format'])

    def output(self, data: Any):
        """Output data in the selected format."""
        click.echo(self.formatter.format(data))

    def emit(self, result) -> None:
        """Output a successful result or raise its failure."""
        if isinstance(result, Err):
            result.unwrap()
        self.output(result.value)


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Decorator to handle CLI errors gracefully."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo("\nOperation cancelled by user.", err=True)
            sys.exit(130)
        except (click.ClickException, click.exceptions.Exit, click.Abort):
            raise
        except (RegistryError, ValueError, OSError) as e:
            ctx = click.get_current_context(silent=True)
            cli_ctx = ctx.find_object(CLIContext) if ctx else None

            if isinstance(e, RegistryError):
                click.echo(f"Error: {e.kind.value}: {e}", err=True)
            else:
                click.echo(f"Error: {e}", err=True)

            if cli_ctx and cli_ctx.verbose >= 2:
                click.echo(traceback.format_exc(), err=True)

            sys.exit(1)

    return wrapper
