"""
Token Registry - Registry Service

This module provides the registry service over the blockchain and token
stores: registration, updates, deletion, and the lookups clients run against
them. Every operation returns an ``Ok`` or ``Err`` result rather than raising.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from .concurrency import ConcurrencyError, ReadWriteLock
from .result import (
    Err, Ok, Result, conflict, invalid_input, not_found, storage_failure
)
from .schema import Blockchain, Token, TokenPayload
from .storage import (
    DEFAULT_MAX_KEY_SIZE, DEFAULT_MAX_VALUE_SIZE,
    EntityStore, JSONEntityStore, MemoryEntityStore, StorageError
)


TOKEN_DELETED = 'Token deleted successfully'

TokenPayloadInput = Union[TokenPayload, Mapping[str, Any]]


def _default_id() -> str:
    return str(uuid4())


def _default_clock() -> datetime:
    return datetime.now(timezone.utc)


class RegistryService:
    """Blockchain and token registry operations.

    Owns one store per collection. A single read-write lock spans both
    stores, so check-then-write sequences such as the blockchain name
    uniqueness scan stay atomic when the service is shared between threads.
    Writes also run inside each store's transaction, which keeps them
    atomic against other services sharing the same JSON files.
    """

    def __init__(
        self,
        blockchain_store: Optional[EntityStore[Blockchain]] = None,
        token_store: Optional[EntityStore[Token]] = None,
        id_generator: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        lock_timeout: float = 30.0
    ):
        if blockchain_store is None:
            blockchain_store = MemoryEntityStore(Blockchain)
        if token_store is None:
            token_store = MemoryEntityStore(Token)

        self.blockchains = blockchain_store
        self.tokens = token_store
        self.id_generator = id_generator or _default_id
        self.clock = clock or _default_clock
        self._lock = ReadWriteLock(name="registry", timeout=lock_timeout)
        self.logger = logging.getLogger(__name__)

    @classmethod
    def open(
        cls,
        storage_dir: Optional[Union[str, Path]] = None,
        max_key_size: int = DEFAULT_MAX_KEY_SIZE,
        max_value_size: int = DEFAULT_MAX_VALUE_SIZE,
        lock_timeout: float = 30.0,
        **kwargs
    ) -> 'RegistryService':
        """Build a service over JSON stores in storage_dir, or memory stores if None."""
        bounds = {'max_key_size': max_key_size, 'max_value_size': max_value_size}

        if storage_dir is None:
            return cls(
                MemoryEntityStore(Blockchain, **bounds),
                MemoryEntityStore(Token, **bounds),
                lock_timeout=lock_timeout,
                **kwargs
            )

        storage_dir = Path(storage_dir)
        return cls(
            JSONEntityStore(Blockchain, storage_dir / "blockchains.json",
                            lock_timeout=lock_timeout, **bounds),
            JSONEntityStore(Token, storage_dir / "tokens.json",
                            lock_timeout=lock_timeout, **bounds),
            lock_timeout=lock_timeout,
            **kwargs
        )

    # Blockchain operations

    def create_blockchain(self, name: str, description: str) -> Result[Blockchain]:
        """Register a new blockchain; names must be unique."""
        if not name or not description:
            return invalid_input('Invalid payload for creating blockchain')

        try:
            with self._exclusive():
                if self._find_blockchain_by_name(name) is not None:
                    self.logger.debug(f"Rejected duplicate blockchain name {name!r}")
                    return conflict('Blockchain already exists')

                blockchain = Blockchain(
                    id=self.id_generator(),
                    name=name,
                    description=description,
                    created_at=self.clock(),
                    updated_at=None,
                )
                self.blockchains.put(blockchain.id, blockchain)
        except (StorageError, ConcurrencyError) as e:
            return self._failed('creating blockchain', e)

        self.logger.info(f"Created blockchain {blockchain.id} ({name})")
        return Ok(blockchain)

    def get_blockchain_by_id(self, blockchain_id: str) -> Result[Blockchain]:
        if not blockchain_id:
            return invalid_input('Invalid parameters for getting blockchain')

        try:
            with self._lock.read_lock():
                blockchain = self.blockchains.get(blockchain_id)
        except (StorageError, ConcurrencyError) as e:
            return self._failed('getting blockchain', e)

        if blockchain is None:
            return not_found(f'Blockchain with id={blockchain_id} not found')
        return Ok(blockchain)

    def get_blockchain_by_name(self, name: str) -> Result[Blockchain]:
        """First blockchain whose name matches exactly."""
        if not name:
            return invalid_input('Invalid parameters for getting blockchain')

        try:
            with self._lock.read_lock():
                blockchain = self._find_blockchain_by_name(name)
        except (StorageError, ConcurrencyError) as e:
            return self._failed('getting blockchain', e)

        if blockchain is None:
            return not_found(f'Blockchain with name={name} not found')
        return Ok(blockchain)

    def get_blockchains(self) -> Result[List[Blockchain]]:
        try:
            with self._lock.read_lock():
                return Ok(self.blockchains.values())
        except (StorageError, ConcurrencyError) as e:
            return self._failed('getting blockchains', e)

    def update_blockchain(self, blockchain_id: str, name: str, description: str) -> Result[Blockchain]:
        """Replace name and description of an existing blockchain.

        Name uniqueness is only enforced on create; an update may set a name
        already used by another blockchain.
        """
        if not blockchain_id:
            return invalid_input('Invalid parameters for updating blockchain')

        if not name or not description:
            return invalid_input('Invalid payload for updating blockchain')

        try:
            with self._exclusive():
                existing = self.blockchains.get(blockchain_id)
                if existing is None:
                    return not_found(f'Blockchain with id={blockchain_id} not found')

                updated = existing.model_copy(update={
                    'name': name,
                    'description': description,
                    'updated_at': self.clock(),
                })
                self.blockchains.put(existing.id, updated)
        except (StorageError, ConcurrencyError) as e:
            return self._failed('updating blockchain', e)

        self.logger.info(f"Updated blockchain {updated.id}")
        return Ok(updated)

    # Token operations

    def create_token(self, payload: TokenPayloadInput) -> Result[Token]:
        """Register a token on an existing blockchain."""
        checked = self._check_token_payload(payload, 'creating')
        if isinstance(checked, Err):
            return checked
        payload = checked.value

        try:
            with self._exclusive():
                if not self._blockchain_exists(payload.blockchain_id):
                    self.logger.debug(
                        f"Rejected token for unknown blockchain {payload.blockchain_id}"
                    )
                    return not_found(f'Blockchain with id {payload.blockchain_id} not found')

                token = Token(
                    id=self.id_generator(),
                    created_at=self.clock(),
                    updated_at=None,
                    **payload.model_dump()
                )
                self.tokens.put(token.id, token)
        except (StorageError, ConcurrencyError) as e:
            return self._failed('creating token', e)

        self.logger.info(
            f"Created token {token.id} ({token.symbol}) on blockchain {token.blockchain_id}"
        )
        return Ok(token)

    def get_token_by_id(self, token_id: str) -> Result[Token]:
        if not token_id:
            return invalid_input('Invalid parameters for getting token')

        try:
            with self._lock.read_lock():
                token = self.tokens.get(token_id)
        except (StorageError, ConcurrencyError) as e:
            return self._failed('getting token', e)

        if token is None:
            return not_found(f'Token with id={token_id} not found')
        return Ok(token)

    def get_tokens(self) -> Result[List[Token]]:
        try:
            with self._lock.read_lock():
                return Ok(self.tokens.values())
        except (StorageError, ConcurrencyError) as e:
            return self._failed('getting tokens', e)

    def get_token_by_contract_address(self, contract_address: str) -> Result[Token]:
        """First token deployed at contract_address.

        Contract addresses are not unique; duplicates resolve to whichever
        token comes first in enumeration order.
        """
        try:
            with self._lock.read_lock():
                for token in self.tokens.values():
                    if token.contract_address == contract_address:
                        return Ok(token)
        except (StorageError, ConcurrencyError) as e:
            return self._failed('getting token', e)

        return not_found(f'Token with contractAddress={contract_address} not found')

    def get_tokens_by_blockchain_id(self, blockchain_id: str) -> Result[List[Token]]:
        """Tokens referencing blockchain_id; the id itself is not checked."""
        if not blockchain_id:
            return invalid_input('Invalid parameters for getting blockchain')

        try:
            with self._lock.read_lock():
                return Ok(self._tokens_on(blockchain_id))
        except (StorageError, ConcurrencyError) as e:
            return self._failed('getting tokens by blockchainId', e)

    def get_tokens_by_blockchain_name(self, name: str) -> Result[List[Token]]:
        """Tokens on the first blockchain named name; empty if none is."""
        try:
            with self._lock.read_lock():
                blockchain = self._find_blockchain_by_name(name)
                blockchain_id = blockchain.id if blockchain is not None else ''
                return Ok(self._tokens_on(blockchain_id))
        except (StorageError, ConcurrencyError) as e:
            return self._failed('getting tokens by blockchain name', e)

    def update_token(self, token_id: str, payload: TokenPayloadInput) -> Result[Token]:
        """Replace every mutable field of an existing token.

        Unlike create, blockchain_id is not checked against the blockchain
        store.
        """
        if not token_id:
            return invalid_input('Invalid parameters for updating token')

        checked = self._check_token_payload(payload, 'updating')
        if isinstance(checked, Err):
            return checked
        payload = checked.value

        try:
            with self._exclusive():
                existing = self.tokens.get(token_id)
                if existing is None:
                    return not_found(f'Token with id={token_id} not found')

                updated = Token(
                    id=existing.id,
                    created_at=existing.created_at,
                    updated_at=self.clock(),
                    **payload.model_dump()
                )
                self.tokens.put(existing.id, updated)
        except (StorageError, ConcurrencyError) as e:
            return self._failed('updating token', e)

        self.logger.info(f"Updated token {updated.id}")
        return Ok(updated)

    def delete_token(self, token_id: str) -> Result[str]:
        if not token_id:
            return invalid_input('Invalid parameters for deleting token')

        try:
            with self._exclusive():
                removed = self.tokens.remove(token_id)
        except (StorageError, ConcurrencyError) as e:
            return self._failed('deleting token', e)

        if removed is None:
            return not_found(f'Token with id={token_id} not found')

        self.logger.info(f"Deleted token {token_id}")
        return Ok(TOKEN_DELETED)

    def get_registry_stats(self) -> Result[Dict[str, Any]]:
        """Collection sizes and lock metrics."""
        try:
            with self._lock.read_lock():
                return Ok({
                    'total_blockchains': len(self.blockchains),
                    'total_tokens': len(self.tokens),
                    'lock': self._lock.get_metrics(),
                })
        except (StorageError, ConcurrencyError) as e:
            return self._failed('getting registry stats', e)

    # Helpers

    @contextmanager
    def _exclusive(self):
        """Write lock plus every store's transaction, always taken in the same order."""
        with self._lock.write_lock():
            with self.blockchains.transaction(), self.tokens.transaction():
                yield

    def _find_blockchain_by_name(self, name: str) -> Optional[Blockchain]:
        for blockchain in self.blockchains.values():
            if blockchain.name == name:
                return blockchain
        return None

    def _blockchain_exists(self, blockchain_id: str) -> bool:
        return any(b.id == blockchain_id for b in self.blockchains.values())

    def _tokens_on(self, blockchain_id: str) -> List[Token]:
        return [t for t in self.tokens.values() if t.blockchain_id == blockchain_id]

    def _check_token_payload(self, payload: TokenPayloadInput, action: str) -> Result[TokenPayload]:
        """Parse and validate a token payload for create or update."""
        if not isinstance(payload, TokenPayload):
            if not isinstance(payload, Mapping):
                return invalid_input(f'Invalid payload for {action} token')
            try:
                payload = TokenPayload.model_validate(dict(payload))
            except ValidationError as e:
                self.logger.debug(f"Token payload failed validation: {e}")
                return invalid_input(f'Invalid payload for {action} token')

        if not payload.is_complete():
            return invalid_input(f'Invalid payload for {action} token')

        if payload.total_supply <= 0:
            return invalid_input('Invalid parameters totalSupply is always greater than zero')

        return Ok(payload)

    def _failed(self, action: str, error: Exception) -> Err:
        self.logger.error(f"Failed while {action}: {error}")
        return storage_failure(f"Failed while {action}: {error}")
