"""
DB3 Python SDK - Client library for DB3 storage nodes.

This SDK turns document operations into signed, binary-encoded mutations:
- Mutation builders for databases, collections and documents
- Binary codec (protobuf mutations, BSON documents)
- Per-account nonce sequencing
- Db3Client for submitting mutations and interpreting responses

Example:
    >>> from db3_sdk import Db3Account, Db3Client
    >>>
    >>> account = Db3Account.create_from_private_key("0x...")
    >>> async with Db3Client("127.0.0.1:26619", account) as client:
    ...     mutation_id, db_addr = await client.create_database("todo app")
    ...     await client.create_collection(db_addr, "todos")
    ...     await client.create_document(db_addr, "todos", {"text": "buy milk", "done": False})

Invariants:
    - Every mutation carries the account's next nonce
    - The nonce advances only when the node accepts
    - Nothing is retried automatically

Version: 1.0.0
"""

__version__ = "1.0.0"

from .account import (
    Db3Account,
    create_from_private_key,
    create_random_account,
    sign_typed_data,
)
from .client import Db3Client, SubmissionResult
from .codec import (
    ValueKind,
    decode_document,
    decode_mutation,
    encode_document,
    encode_mutation,
    from_hex,
    to_hex,
)
from .config import ClientSettings
from .errors import (
    Db3Error,
    InvalidArgumentError,
    MutationRejectedError,
    NonceConflictError,
    NotInitializedError,
    SerializationError,
    TransportError,
)
from .memory import InMemoryStorageNode, InMemoryTransport
from .mutation import (
    build_add_collection,
    build_add_document,
    build_create_database,
    build_delete_document,
    build_update_document,
)
from .nonce import NonceSequencer
from .schema import (
    CollectionMutation,
    DocumentMask,
    DocumentMutation,
    Index,
    IndexType,
    Mutation,
    MutationAction,
)
from .transport import ExtraItem, MutationResponse, ResponseCode, StorageTransport

__all__ = [
    # Version
    "__version__",
    # Account
    "Db3Account",
    "create_from_private_key",
    "create_random_account",
    "sign_typed_data",
    # Client
    "Db3Client",
    "SubmissionResult",
    "ClientSettings",
    "NonceSequencer",
    # Mutations
    "Mutation",
    "MutationAction",
    "CollectionMutation",
    "DocumentMutation",
    "DocumentMask",
    "Index",
    "IndexType",
    "build_create_database",
    "build_add_collection",
    "build_add_document",
    "build_update_document",
    "build_delete_document",
    # Codec
    "ValueKind",
    "encode_document",
    "decode_document",
    "encode_mutation",
    "decode_mutation",
    "from_hex",
    "to_hex",
    # Transport
    "StorageTransport",
    "MutationResponse",
    "ExtraItem",
    "ResponseCode",
    "InMemoryStorageNode",
    "InMemoryTransport",
    # Errors
    "Db3Error",
    "InvalidArgumentError",
    "SerializationError",
    "NotInitializedError",
    "MutationRejectedError",
    "NonceConflictError",
    "TransportError",
]
