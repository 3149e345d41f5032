#!/usr/bin/env python3
"""
Blockchain Commands for the Token Registry CLI

Register blockchain networks, look them up, and update their details.
"""

import click

from cli.context import CLIContext, handle_cli_error, pass_context


@click.group()
@pass_context
def blockchain(ctx: CLIContext):
    """
    Blockchain network commands.

    Register networks that tokens can then be issued on.
    """
    ctx.logger.debug("Blockchain command group invoked")


@blockchain.command('create')
@click.option('--name', required=True, help='Network name (must be unique)')
@click.option('--description', required=True, help='Network description')
@pass_context
@handle_cli_error
def create_blockchain(ctx: CLIContext, name: str, description: str):
    """
    Register a new blockchain.

    Examples:
        chain-registry blockchain create --name Ethereum --description "L1"
    """
    ctx.logger.info(f"Registering blockchain {name}")
    ctx.emit(ctx.registry.create_blockchain(name, description))


@blockchain.command('get')
@click.argument('blockchain_id')
@pass_context
@handle_cli_error
def get_blockchain(ctx: CLIContext, blockchain_id: str):
    """Show a blockchain by id."""
    ctx.emit(ctx.registry.get_blockchain_by_id(blockchain_id))


@blockchain.command('get-by-name')
@click.argument('name')
@pass_context
@handle_cli_error
def get_blockchain_by_name(ctx: CLIContext, name: str):
    """Show a blockchain by exact name."""
    ctx.emit(ctx.registry.get_blockchain_by_name(name))


@blockchain.command('list')
@pass_context
@handle_cli_error
def list_blockchains(ctx: CLIContext):
    """List every registered blockchain."""
    ctx.emit(ctx.registry.get_blockchains())


@blockchain.command('update')
@click.argument('blockchain_id')
@click.option('--name', required=True, help='New network name')
@click.option('--description', required=True, help='New network description')
@pass_context
@handle_cli_error
def update_blockchain(ctx: CLIContext, blockchain_id: str, name: str, description: str):
    """Replace the name and description of a blockchain."""
    ctx.logger.info(f"Updating blockchain {blockchain_id}")
    ctx.emit(ctx.registry.update_blockchain(blockchain_id, name, description))
