from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from panelcore.core.errors import ConfigError


class SessionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    timeout_ms: int = Field(default=15 * 60 * 1000, ge=1)
    cleanup_interval_ms: int = Field(default=60 * 1000, ge=0)
    cookie_max_age_seconds: int = Field(default=900, ge=1)


class LockConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    store_path: str = os.path.join("locks", "active_locks.json")
    # 0 (or less) disables lock expiry entirely.
    timeout_ms: int = 30 * 60 * 1000
    cleanup_interval_ms: int = Field(default=5 * 60 * 1000, ge=0)
    clear_on_start: bool = True


class UsersConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    users_dir: str = "users"
    default_owner_username: str = "owner"
    default_owner_password: str = "password"


class WebConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    bind_host: str = "0.0.0.0"
    port: int = Field(default=80, ge=1, le=65535)
    https_only: bool = False
    allowed_origins: List[str] = Field(default_factory=list)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    log_dir: str = "logs"
    events_path: str = os.path.join("logs", "events.jsonl")
    security_log_path: str = os.path.join("logs", "security.jsonl")


class SweepConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    tick_ms: int = Field(default=1000, ge=10)


class PanelConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    sessions: SessionConfig = Field(default_factory=SessionConfig)
    locks: LockConfig = Field(default_factory=LockConfig)
    users: UsersConfig = Field(default_factory=UsersConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    sweep: SweepConfig = Field(default_factory=SweepConfig)


def _read_json(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _atomic_write_json(path: str, data: Dict[str, Any]) -> None:
    parent = os.path.dirname(path) or "."
    os.makedirs(parent, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)
            f.write("\n")
        os.replace(tmp_path, path)
    finally:
        try:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        except OSError:
            pass


@dataclass(frozen=True)
class ConfigPaths:
    config_dir: str = "config"

    @property
    def panel(self) -> str:
        return os.path.join(self.config_dir, "panel.json")


class ConfigLoader:
    def __init__(self, paths: ConfigPaths):
        self.paths = paths

    def load(self) -> PanelConfig:
        try:
            raw = _read_json(self.paths.panel)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError("Config file is unreadable.", path=self.paths.panel, reason=str(e)) from e
        if not isinstance(raw, dict):
            raise ConfigError("Config file must contain a JSON object.", path=self.paths.panel)
        try:
            return PanelConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigError("Config file is invalid.", path=self.paths.panel, errors=e.errors(include_url=False)) from e

    def save(self, cfg: PanelConfig) -> None:
        _atomic_write_json(self.paths.panel, cfg.model_dump())

    def ensure_default(self) -> PanelConfig:
        cfg = self.load()
        if not os.path.exists(self.paths.panel):
            self.save(cfg)
        return cfg
