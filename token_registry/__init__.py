"""
Token Registry

Registry of blockchain networks and the tokens issued on them.
"""

__version__ = "1.0.0"

from .manager import RegistryService, TOKEN_DELETED
from .result import (
    ConflictError, Err, ErrorKind, InvalidInputError, NotFoundError,
    Ok, OperationFailedError, RegistryError, Result
)
from .schema import Blockchain, Token, TokenPayload
from .storage import (
    EntityStore, JSONEntityStore, MemoryEntityStore,
    KeyTooLongError, RecordTooLargeError, StorageError
)

__all__ = [
    'RegistryService', 'TOKEN_DELETED',
    'Ok', 'Err', 'Result', 'ErrorKind',
    'RegistryError', 'InvalidInputError', 'NotFoundError', 'ConflictError', 'OperationFailedError',
    'Blockchain', 'Token', 'TokenPayload',
    'EntityStore', 'MemoryEntityStore', 'JSONEntityStore',
    'StorageError', 'KeyTooLongError', 'RecordTooLargeError',
]
