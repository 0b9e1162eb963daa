"""
Access token verification settings.

Dependencies: pydantic, pydantic_settings
System role: JWT verification parameters for the auth dependency
"""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import SettingsConfigDict

from companion_chat.configs.base import BaseSettings


class AuthSettings(BaseSettings):
    """JWT verification configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="JWT_",
        case_sensitive=False,
        extra="ignore",
    )

    algorithm: Literal["HS256", "RS256"] = Field(default="HS256")
    secret: str | None = Field(default=None, description="Shared secret for HS256")
    public_key: str | None = Field(
        default=None,
        description="PEM text or path to a PEM file for RS256",
    )
    issuer: str = Field(default="companion-auth-api")
    audience: str = Field(default="companion-users")
    required_role: str = Field(default="student", description="Role allowed to chat")
    leeway_seconds: int = Field(default=2, description="Clock skew tolerance")

    @model_validator(mode="after")
    def _check_key_material(self) -> "AuthSettings":
        if self.algorithm == "HS256" and self.secret is not None and len(self.secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters")
        return self
