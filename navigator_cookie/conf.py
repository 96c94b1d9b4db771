"""
Navigator Cookie settings.

Transport attributes default to a session cookie scoped to ``/``,
sent over HTTPS only and hidden from scripts.
"""
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .envelope.config import (
    SUPPORTED_CIPHERS,
    SecretKey,
    get_cipher_backend,
    load_secret_key,
)

COOKIE_DEFAULT_PATH = '/'


class CookieOptions(BaseModel):
    """Transport attributes, passed through untouched."""

    expire: int = Field(default=0, ge=0)
    path: str = COOKIE_DEFAULT_PATH
    domain: str = ''
    secure: bool = True
    httponly: bool = True

    model_config = {"frozen": True}


class CookieConfig(BaseModel):
    """Validated cookie configuration."""

    secret_key: SecretKey
    cipher_backend: str = Field(default="aesgcm")
    options: CookieOptions = Field(default_factory=CookieOptions)

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        if v not in SUPPORTED_CIPHERS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @classmethod
    def from_env(cls, options: Optional[CookieOptions] = None) -> "CookieConfig":
        """Create CookieConfig by loading values from environment.

        Returns:
            Populated CookieConfig instance.
        """
        return cls(
            secret_key=load_secret_key(),
            cipher_backend=get_cipher_backend(),
            options=options or CookieOptions(),
        )
