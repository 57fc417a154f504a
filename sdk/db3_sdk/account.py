"""
Account handle for the DB3 SDK.

A Db3Account pairs an address with the ability to sign EIP-712 typed data.
Key management stays with eth-account; the SDK only asks for an address
and a signature.

Example:
    >>> account = Db3Account.create_from_private_key("0x" + "11" * 32)
    >>> signature = account.sign(typed_data)
"""

from __future__ import annotations

import logging
from typing import Any

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount

from .errors import InvalidArgumentError

logger = logging.getLogger(__name__)


class Db3Account:
    """Signing identity used to authorize mutations.

    Attributes:
        address: Checksummed hex address derived from the public key
    """

    def __init__(self, signer: LocalAccount) -> None:
        self._signer = signer
        self.address: str = signer.address

    @classmethod
    def create_from_private_key(cls, private_key: str | bytes) -> Db3Account:
        """Load an account from a hex or raw private key.

        Raises:
            InvalidArgumentError: If the key is malformed
        """
        try:
            signer = Account.from_key(private_key)
        except Exception as e:
            raise InvalidArgumentError(f"Invalid private key: {e}", argument="private_key") from e
        return cls(signer)

    @classmethod
    def create_random(cls) -> Db3Account:
        """Generate a fresh account with a random key."""
        account = cls(Account.create())
        logger.debug(f"Created random account {account.address}")
        return account

    def get_address(self) -> str:
        """Return the account address."""
        return self.address

    def sign(self, typed_data: dict[str, Any]) -> str:
        """Sign EIP-712 typed data.

        Args:
            typed_data: Full typed-data message (types, domain, primaryType, message)

        Returns:
            0x-prefixed hex signature
        """
        signable = encode_typed_data(full_message=typed_data)
        signed = self._signer.sign_message(signable)
        return "0x" + bytes(signed.signature).hex()

    def __repr__(self) -> str:
        return f"Db3Account(address={self.address!r})"


def create_from_private_key(private_key: str | bytes) -> Db3Account:
    """Load an account from a private key."""
    return Db3Account.create_from_private_key(private_key)


def create_random_account() -> Db3Account:
    """Generate an account with a random key."""
    return Db3Account.create_random()


def sign_typed_data(account: Db3Account, typed_data: dict[str, Any]) -> str:
    """Sign EIP-712 typed data with an account."""
    return account.sign(typed_data)


def recover_typed_data_signer(typed_data: dict[str, Any], signature: str) -> str:
    """Return the address that produced a typed-data signature."""
    signable = encode_typed_data(full_message=typed_data)
    return Account.recover_message(signable, signature=signature)
