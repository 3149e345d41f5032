#!/usr/bin/env python3
"""
Token Registry - Command Line Interface

Register blockchain networks and the tokens issued on them, and query the
registry by id, name, contract address or owning blockchain.
"""

from typing import Optional

import click

from token_registry import __version__

from cli.commands.blockchain import blockchain
from cli.commands.config import config
from cli.commands.token import token
from cli.context import CLIContext, handle_cli_error, pass_context


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c',
              type=click.Path(dir_okay=False),
              help='Path to configuration file (YAML or JSON)')
@click.option('--profile',
              type=click.Choice(['production', 'development', 'ephemeral']),
              help='Configuration profile')
@click.option('--output-format', '-o',
              type=click.Choice(['table', 'json', 'yaml']),
              help='Output format')
@click.option('--data-dir',
              type=click.Path(file_okay=False),
              help='Registry data directory (json backend)')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.version_option(version=__version__, prog_name='chain-registry')
@pass_context
@handle_cli_error
def cli(ctx: CLIContext, config_file: Optional[str], profile: Optional[str],
        output_format: Optional[str], data_dir: Optional[str], verbose: int):
    """
    Token Registry Command Line Interface

    Examples:
        chain-registry blockchain create --name Ethereum --description "L1"
        chain-registry token list --blockchain-name Ethereum
        chain-registry -o json token get <token-id>
    """
    ctx.config_file = config_file
    ctx.profile = profile
    ctx.output_format = output_format
    ctx.data_dir = data_dir
    ctx.verbose = verbose

    ctx.setup_logging()
    ctx.logger.debug(f"CLI initialized from {', '.join(ctx.config_manager.get_sources())}")


cli.add_command(blockchain)
cli.add_command(token)
cli.add_command(config)


def main():
    cli()


if __name__ == '__main__':
    main()
