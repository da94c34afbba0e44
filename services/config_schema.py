from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Reusable coercions
# ---------------------------------------------------------------------------

def _coerce_str(v: object) -> object:
    # QQ numbers are frequently written as bare integers in YAML / TOML
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    return v


NumericStr = Annotated[str, BeforeValidator(_coerce_str)]


# ---------------------------------------------------------------------------
# Base for all config blocks: unknown keys are a validation error
# ---------------------------------------------------------------------------

class _BlockConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Encoder
# ---------------------------------------------------------------------------

class EncoderConfig(_BlockConfig):
    max_forward_depth: int = Field(default=3, ge=0)
    default_nickname:  str = "QQ用户"
    # Group code written into group routing heads; the backend never checks it
    group_code:        int = 284840486


# ---------------------------------------------------------------------------
# Per-backend config models
# ---------------------------------------------------------------------------

class LocalBackendConfig(_BlockConfig):
    self_uin:      NumericStr = "10000"
    self_uid:      str        = "u_local"
    self_nick:     str        = ""
    storage_dir:   str        = ""
    max_file_size: int        = 30 * 1024 * 1024

    @model_validator(mode="after")
    def _check_uin(self) -> LocalBackendConfig:
        if not self.self_uin.isdigit():
            raise ValueError("'self_uin' must be a numeric QQ number")
        return self


# ---------------------------------------------------------------------------
# Top-level application config
# ---------------------------------------------------------------------------

class AppConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    backend: str           = "local"
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
