"""
Configuration for the DB3 client SDK.

Uses pydantic-settings for environment variable loading.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """Client configuration loaded from environment."""

    # Storage node connection
    storage_host: str = Field(default="127.0.0.1", description="Storage node gRPC host")
    storage_port: int = Field(default=26619, description="Storage node gRPC port")
    secure: bool = Field(default=False, description="Use TLS for the gRPC channel")

    # Call limits
    request_timeout: float = Field(default=30.0, description="Per-call deadline in seconds")
    max_message_size: int = Field(
        default=50 * 1024 * 1024, description="Max gRPC send/receive message size in bytes"
    )

    model_config = {"env_prefix": "DB3_"}

    @property
    def storage_endpoint(self) -> str:
        """Full storage node gRPC endpoint."""
        return f"{self.storage_host}:{self.storage_port}"
