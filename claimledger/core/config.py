"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./claims.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None
    # seconds a SQLite writer waits for the database lock
    busy_timeout: float = 30.0


class SecuritySettings(BaseModel):
    secret_key: str = Field(default="change-me", min_length=8)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24


class SigningSettings(BaseModel):
    """Signing key source and the domain folded into every claim digest."""

    app_name: str = "claim-ledger"
    app_version: str = "1"
    network: str = "devnet"
    private_key_path: Optional[Path] = None
    private_key_seed: Optional[str] = Field(default=None, min_length=64, max_length=64)
    authorized_signer: Optional[str] = None


class ClaimSettings(BaseModel):
    ttl_seconds: int = Field(default=300, gt=0)
    clock_skew_seconds: int = Field(default=30, ge=0, le=300)
    persist_timeout_seconds: float = Field(default=5.0, gt=0)
    gc_grace_seconds: int = Field(default=60 * 60 * 24, ge=0)
    stalled_after_seconds: int = Field(default=300, ge=0)
    base_reward: int = Field(default=100, gt=0)
    achievement_reward: int = Field(default=1000, gt=0)


class LedgerSettings(BaseModel):
    rpc_url: Optional[str] = None
    confirmations: int = Field(default=0, ge=0)
    target_address: Optional[str] = None
    timeout_seconds: float = 10.0


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Claim Ledger Server"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    signing: SigningSettings = SigningSettings()
    claims: ClaimSettings = ClaimSettings()
    ledger: LedgerSettings = LedgerSettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def secret_key(self) -> str:
        return self.security.secret_key

    @property
    def algorithm(self) -> str:
        return self.security.algorithm

    @property
    def access_token_expire_minutes(self) -> int:
        return self.security.access_token_expire_minutes

    @property
    def signing_domain(self) -> dict[str, str]:
        return {
            "name": self.signing.app_name,
            "version": self.signing.app_version,
            "network": self.signing.network,
        }


@lru_cache()
def get_settings() -> Settings:
    return Settings()
