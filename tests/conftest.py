"""
Shared fixtures for the DB3 SDK tests.
"""

import pytest

from db3_sdk.account import Db3Account

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"
DB_ADDRESS = "0x" + "ab" * 20


@pytest.fixture
def account():
    """Account with a fixed, well-known key."""
    return Db3Account.create_from_private_key(PRIVATE_KEY)


@pytest.fixture
def db_address():
    """A well-formed database address."""
    return DB_ADDRESS
