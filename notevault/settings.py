"""Settings and configuration."""
from functools import lru_cache
from typing import Optional

from pydantic import SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from notevault.domain.blobs.cipher import ALGORITHM_AES_256_GCM, CIPHERS
from notevault.domain.blobs.errors import ConfigurationInvalid
from notevault.domain.blobs.keys import parse_master_key


class Settings(BaseSettings):
    # Security
    NOTEVAULT_MASTER_KEY: SecretStr  # 32 bytes as 64 hex chars
    BLOB_CIPHER: str = ALGORITHM_AES_256_GCM

    # Auth (tokens are issued by an external identity service)
    JWT_SECRET: Optional[SecretStr] = None
    JWT_JWKS_URL: Optional[str] = None
    JWT_ISSUER: Optional[str] = None
    JWT_AUDIENCE: Optional[str] = None
    JWT_EXPIRE_SECONDS: int = 7 * 24 * 3600

    # Storage
    DATABASE_URL: str = "sqlite:///./notevault.db"
    UPLOAD_DIR: str = "uploads"
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB

    # Runtime
    DEV_MODE: bool = False
    RUN_MIGRATIONS: bool = False
    LOG_LEVEL: str = "INFO"

    # Observability
    TRACING_ENABLED: bool = False
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore",
    )

    @field_validator("NOTEVAULT_MASTER_KEY")
    @classmethod
    def validate_master_key(cls, v: SecretStr) -> SecretStr:
        parse_master_key(v.get_secret_value())
        return SecretStr(v.get_secret_value().strip().lower())

    @field_validator("BLOB_CIPHER")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in CIPHERS:
            raise ValueError(f"Unsupported blob cipher: {v}")
        return v

    @field_validator("MAX_FILE_SIZE")
    @classmethod
    def validate_max_file_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("MAX_FILE_SIZE must be positive")
        return v

    @property
    def master_key_bytes(self) -> bytes:
        return parse_master_key(self.NOTEVAULT_MASTER_KEY.get_secret_value())


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, failing with ConfigurationInvalid.

    Validation errors are re-raised without their input values so the master
    key never ends up in a traceback.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationInvalid(f"Invalid configuration: {problems}") from None

    if not settings.JWT_SECRET and not settings.JWT_JWKS_URL:
        raise ConfigurationInvalid("Invalid configuration: JWT_SECRET or JWT_JWKS_URL must be set")
    return settings


@lru_cache
def get_settings() -> Settings:
    return load_settings()
