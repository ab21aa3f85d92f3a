from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    hasher: str = Field(default="poseidon-bn256", alias="FIELDMERKLE_HASHER")

    # Tree created at service start-up: 2**levels zero leaves
    levels: int = Field(default=4, alias="FIELDMERKLE_LEVELS")
    # Largest level count the service will allocate on request
    max_levels: int = Field(default=20, alias="FIELDMERKLE_MAX_LEVELS")

    signing_key_path: str = Field(
        default="./keys/ed25519_private.key", alias="FIELDMERKLE_SIGNING_KEY_PATH"
    )
    signing_pubkey_path: str = Field(
        default="./keys/ed25519_public.key", alias="FIELDMERKLE_SIGNING_PUBKEY_PATH"
    )
    allow_dev_keygen: bool = Field(default=False, alias="FIELDMERKLE_ALLOW_DEV_KEYGEN")

    # Global request size limit enforced by middleware (bytes)
    max_request_bytes: int = Field(default=1048576, alias="FIELDMERKLE_MAX_REQUEST_BYTES")

    log_level: str = Field(default="INFO", alias="FIELDMERKLE_LOG_LEVEL")

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()  # load at import
