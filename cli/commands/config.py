#!/usr/bin/env python3
"""
Configuration Commands for the Token Registry CLI
"""

import sys

import click

from cli.context import CLIContext, handle_cli_error, pass_context


@click.group()
@pass_context
def config(ctx: CLIContext):
    """Inspect the effective configuration."""
    ctx.logger.debug("Config command group invoked")


@config.command('show')
@click.option('--sources', is_flag=True, help='List where configuration was loaded from')
@pass_context
@handle_cli_error
def show_config(ctx: CLIContext, sources: bool):
    """Show the merged configuration."""
    if sources:
        ctx.output(ctx.config_manager.get_sources())
        return
    ctx.output(ctx.config)


@config.command('validate')
@pass_context
@handle_cli_error
def validate_config(ctx: CLIContext):
    """Check the merged configuration for invalid values."""
    errors = ctx.config_manager.validate()
    if errors:
        for error in errors:
            click.echo(f"Error: {error}", err=True)
        sys.exit(1)
    click.echo("Configuration is valid")
