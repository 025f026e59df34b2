"""
Shared configuration management for the Bearer Gate.
"""

import json
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="GATE_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Service
    service_name: str = Field(default="gate")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8020)


class GateConfig(BaseConfig):
    """Issuing authority and verification policy."""

    # Issuing authority
    issuer: str = Field(default="http://localhost:8080/realms/gate")
    jwks_uri: Optional[str] = Field(default=None)
    http_timeout: float = Field(default=10.0)

    # Verification policy defaults
    client_ids: Annotated[List[str], NoDecode] = Field(default_factory=list)
    scope: Optional[str] = Field(default=None)
    respond: bool = Field(default=True)
    allow_no_token: bool = Field(default=False)
    load_user_info: bool = Field(default=False)

    # Resilience
    circuit_failure_threshold: int = Field(default=5)
    circuit_recovery_timeout: float = Field(default=30.0)
    retry_attempts: int = Field(default=3)
    retry_base_delay: float = Field(default=0.5)

    @field_validator("client_ids", mode="before")
    @classmethod
    def _split_client_ids(cls, value):
        # GATE_CLIENT_IDS=a,b is accepted as well as a JSON list
        if isinstance(value, str) and value.lstrip().startswith("["):
            return json.loads(value)
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("issuer")
    @classmethod
    def _strip_issuer(cls, value: str) -> str:
        return value.rstrip("/")


def get_config(**overrides) -> GateConfig:
    """Get gate configuration, environment first, keyword overrides last."""
    return GateConfig(**overrides)
