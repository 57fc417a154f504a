"""
Internal gRPC transport for the DB3 SDK.

This module provides the low-level gRPC communication with a storage node.
It is internal to the SDK and should not be used directly by users.

Users should use Db3Client instead, which provides a clean Python API.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import grpc
from grpc import aio as grpc_aio

from ._proto import (
    GetNonceRequest,
    GetNonceResponse,
    SendMutationRequest,
    SendMutationResponse,
)
from .account import Db3Account
from .errors import TransportError
from .transport import (
    ExtraItem,
    MutationResponse,
    build_typed_request,
    encode_typed_request,
)

logger = logging.getLogger(__name__)

SEND_MUTATION_METHOD = "/db3_storage_proto.StorageNode/SendMutation"
GET_NONCE_METHOD = "/db3_storage_proto.StorageNode/GetNonce"

# PayloadType.TypedDataPayload
TYPED_DATA_PAYLOAD = 3


def _describe(error: grpc.RpcError) -> str:
    """Format an RPC error as 'CODE: details' when the error carries them."""
    code = getattr(error, "code", None)
    details = getattr(error, "details", None)
    if callable(code) and callable(details):
        status = code()
        name = status.name if status is not None else "UNKNOWN"
        return f"{name}: {details()}"
    return str(error)


class GrpcStorageTransport:
    """Internal gRPC transport to a DB3 storage node.

    Signs every mutation with the account before sending it, and maps
    RPC failures and deadline overruns to TransportError.

    This is an internal class - users should use Db3Client instead.
    """

    def __init__(
        self,
        account: Db3Account,
        host: str = "127.0.0.1",
        port: int = 26619,
        *,
        secure: bool = False,
        credentials: grpc.ChannelCredentials | None = None,
        timeout: float | None = 30.0,
        max_message_size: int = 50 * 1024 * 1024,
    ) -> None:
        """Initialize the gRPC transport.

        Args:
            account: Account that signs mutations
            host: Storage node hostname
            port: Storage node port
            secure: Whether to use TLS
            credentials: Optional TLS credentials
            timeout: Per-call deadline in seconds (None for no deadline)
            max_message_size: Max send/receive message size in bytes
        """
        self._account = account
        self._host = host
        self._port = port
        self._secure = secure
        self._credentials = credentials
        self._timeout = timeout
        self._max_message_size = max_message_size
        self._channel: grpc_aio.Channel | None = None
        self._send_mutation: Any = None
        self._get_nonce: Any = None

    @property
    def address(self) -> str:
        """Storage node address (host:port)."""
        return f"{self._host}:{self._port}"

    async def connect(self) -> None:
        """Open the channel to the storage node."""
        if self._channel is not None:
            return

        options = [
            ("grpc.max_send_message_length", self._max_message_size),
            ("grpc.max_receive_message_length", self._max_message_size),
        ]
        if self._secure:
            self._channel = grpc_aio.secure_channel(
                self.address,
                self._credentials or grpc.ssl_channel_credentials(),
                options=options,
            )
        else:
            self._channel = grpc_aio.insecure_channel(self.address, options=options)

        self._send_mutation = self._channel.unary_unary(
            SEND_MUTATION_METHOD,
            request_serializer=SendMutationRequest.SerializeToString,
            response_deserializer=SendMutationResponse.FromString,
        )
        self._get_nonce = self._channel.unary_unary(
            GET_NONCE_METHOD,
            request_serializer=GetNonceRequest.SerializeToString,
            response_deserializer=GetNonceResponse.FromString,
        )
        logger.debug(f"Connected to DB3 storage node at {self.address}")

    async def close(self) -> None:
        """Close the channel."""
        if self._channel:
            await self._channel.close()
            self._channel = None
            self._send_mutation = None
            self._get_nonce = None
            logger.debug("Disconnected from DB3 storage node")

    async def __aenter__(self) -> GrpcStorageTransport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def _ensure_connected(self) -> None:
        if self._channel is None:
            raise RuntimeError("Not connected. Call connect() first.")

    async def send_mutation(self, payload: bytes, nonce: str) -> MutationResponse:
        """Sign and submit an encoded mutation.

        Args:
            payload: Encoded mutation bytes
            nonce: Nonce for this submission, as a decimal string

        Returns:
            MutationResponse with the node's verdict

        Raises:
            TransportError: If no response was received
        """
        self._ensure_connected()

        typed_data = build_typed_request(payload, nonce)
        request = SendMutationRequest(
            payload=encode_typed_request(typed_data),
            signature=self._account.sign(typed_data),
            payload_type=TYPED_DATA_PAYLOAD,
        )

        try:
            response = await self._send_mutation(request, timeout=self._timeout)
        except grpc.RpcError as e:
            raise TransportError(
                f"SendMutation failed: {_describe(e)}", address=self.address
            ) from e
        except asyncio.TimeoutError as e:
            raise TransportError("SendMutation timed out", address=self.address) from e

        return MutationResponse(
            code=response.code,
            id=response.id,
            items=tuple(ExtraItem(key=item.key, value=item.value) for item in response.items),
            block=response.block,
            order=response.order,
        )

    async def get_nonce(self, address: str) -> str:
        """Get the next nonce the node expects from an address.

        Returns:
            Nonce as a decimal string

        Raises:
            TransportError: If no response was received
        """
        self._ensure_connected()

        try:
            response = await self._get_nonce(GetNonceRequest(address=address), timeout=self._timeout)
        except grpc.RpcError as e:
            raise TransportError(f"GetNonce failed: {_describe(e)}", address=self.address) from e
        except asyncio.TimeoutError as e:
            raise TransportError("GetNonce timed out", address=self.address) from e

        return str(response.nonce)
