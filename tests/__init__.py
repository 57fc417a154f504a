"""
DB3 client SDK test suite.

This package contains:
- unit/: Unit tests for pure components (codec, builders, nonce, account)
- integration/: Client flows against mocked transports and the in-memory node
"""
