#!/usr/bin/env python3
"""
Token Commands for the Token Registry CLI

Register tokens on known blockchains, query them by id, contract address or
owning blockchain, update them, and delete them.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import click
from pydantic.alias_generators import to_camel

from cli.context import CLIContext, handle_cli_error, pass_context


def load_json_file(file_path: str) -> Dict[str, Any]:
    """Load a JSON payload file."""
    path = Path(file_path)
    if not path.exists():
        raise click.FileError(file_path, hint="file not found")

    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise click.FileError(file_path, hint=f"invalid JSON: {e}")

    if not isinstance(data, dict):
        raise click.FileError(file_path, hint="payload must be a JSON object")
    return data


def build_payload(from_file: Optional[str], **fields) -> Dict[str, Any]:
    """Merge a payload file with explicitly given options (options win).

    Options are keyed by their camelCase wire names, which take precedence
    over snake_case keys when a payload carries both.
    """
    payload = load_json_file(from_file) if from_file else {}
    payload.update({to_camel(key): value for key, value in fields.items() if value is not None})
    return payload


def token_fields(func):
    """Options shared by token create and update."""
    options = [
        click.option('--from-file', type=click.Path(), help='JSON payload file'),
        click.option('--blockchain-id', help='Owning blockchain id'),
        click.option('--contract-address', help='Token contract address'),
        click.option('--description', help='Token description'),
        click.option('--total-supply', type=int, help='Total supply (> 0)'),
        click.option('--decimals', type=int, help='Decimal places'),
        click.option('--symbol', help='Token symbol'),
        click.option('--name', help='Token name'),
    ]
    for option in options:
        func = option(func)
    return func


@click.group()
@pass_context
def token(ctx: CLIContext):
    """
    Token commands.

    Tokens must reference an existing blockchain when they are created.
    """
    ctx.logger.debug("Token command group invoked")


@token.command('create')
@token_fields
@pass_context
@handle_cli_error
def create_token(ctx: CLIContext, from_file: Optional[str], **fields):
    """
    Register a new token.

    Examples:
        chain-registry token create --name Tether --symbol USDT --decimals 6 \\
            --total-supply 1000000 --description "Stablecoin" \\
            --contract-address 0xdac1... --blockchain-id <id>
        chain-registry token create --from-file usdt.json
    """
    payload = build_payload(from_file, **fields)
    ctx.logger.info(f"Registering token {payload.get('symbol')}")
    ctx.emit(ctx.registry.create_token(payload))


@token.command('get')
@click.argument('token_id')
@pass_context
@handle_cli_error
def get_token(ctx: CLIContext, token_id: str):
    """Show a token by id."""
    ctx.emit(ctx.registry.get_token_by_id(token_id))


@token.command('get-by-address')
@click.argument('contract_address')
@pass_context
@handle_cli_error
def get_token_by_address(ctx: CLIContext, contract_address: str):
    """Show the first token deployed at a contract address."""
    ctx.emit(ctx.registry.get_token_by_contract_address(contract_address))


@token.command('list')
@click.option('--blockchain-id', help='Only tokens on this blockchain id')
@click.option('--blockchain-name', help='Only tokens on the blockchain with this name')
@pass_context
@handle_cli_error
def list_tokens(ctx: CLIContext, blockchain_id: Optional[str], blockchain_name: Optional[str]):
    """List tokens, optionally filtered by owning blockchain."""
    if blockchain_id is not None and blockchain_name is not None:
        raise click.UsageError("Use either --blockchain-id or --blockchain-name, not both")

    if blockchain_id is not None:
        result = ctx.registry.get_tokens_by_blockchain_id(blockchain_id)
    elif blockchain_name is not None:
        result = ctx.registry.get_tokens_by_blockchain_name(blockchain_name)
    else:
        result = ctx.registry.get_tokens()
    ctx.emit(result)


@token.command('update')
@click.argument('token_id')
@token_fields
@pass_context
@handle_cli_error
def update_token(ctx: CLIContext, token_id: str, from_file: Optional[str], **fields):
    """Replace every field of a token (all fields are required)."""
    payload = build_payload(from_file, **fields)
    ctx.logger.info(f"Updating token {token_id}")
    ctx.emit(ctx.registry.update_token(token_id, payload))


@token.command('delete')
@click.argument('token_id')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompt')
@pass_context
@handle_cli_error
def delete_token(ctx: CLIContext, token_id: str, yes: bool):
    """Delete a token."""
    if not yes and ctx.config['cli']['confirm_destructive']:
        click.confirm(f"Delete token {token_id}?", abort=True)

    ctx.logger.info(f"Deleting token {token_id}")
    ctx.emit(ctx.registry.delete_token(token_id))
