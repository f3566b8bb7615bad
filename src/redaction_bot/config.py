"""Configuration loader for the bot profile."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, field_validator, model_validator

from .areas import MAX_REQUEST_AREA, MIN_SPLIT_AREA

_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

# the remote API times requests out at 300 seconds
API_TIMEOUT_SECONDS = 300

CANDIDATE_SOURCES = ("tracker", "map")


class BotProfile(BaseModel):
    profile_id: str = "local"
    tracker_dsn: str
    source_dsn: str
    api_site: str
    api_prefix: str = "/api/0.6"
    access_token: str | None = None
    timeout_seconds: float = 320.0
    change_compiler: str | None = None
    candidate_source: str = "tracker"
    log_dir: str = "logs"
    max_changeset_elements: int = 500
    max_request_area: float = MAX_REQUEST_AREA
    min_split_area: float = MIN_SPLIT_AREA
    ignore_regions_batch_size: int = 1000
    max_map_attempts: int = 10
    throttle_backoff_seconds: float = 60.0
    changeset_tags: dict[str, str] = {
        "created_by": "Redaction bot",
        "bot": "yes",
        "comment": "Updates based on the redaction process",
    }

    @field_validator("timeout_seconds")
    @classmethod
    def _beyond_api_timeout(cls, value: float) -> float:
        if value <= API_TIMEOUT_SECONDS:
            raise ValueError(f"timeout_seconds must exceed the API timeout ({API_TIMEOUT_SECONDS})")
        return value

    @field_validator("max_changeset_elements", "ignore_regions_batch_size", "max_map_attempts")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("changeset_tags", mode="before")
    @classmethod
    def _tag_values_as_text(cls, value: Any) -> Any:
        # unquoted YAML yes/no/numbers arrive as bool/int
        if not isinstance(value, dict):
            return value
        coerced: dict[str, str] = {}
        for key, item in value.items():
            if isinstance(item, bool):
                coerced[str(key)] = "yes" if item else "no"
            else:
                coerced[str(key)] = str(item)
        return coerced

    @field_validator("candidate_source")
    @classmethod
    def _known_source(cls, value: str) -> str:
        if value not in CANDIDATE_SOURCES:
            raise ValueError(f"candidate_source must be one of {CANDIDATE_SOURCES}")
        return value

    @model_validator(mode="after")
    def _check_areas(self) -> "BotProfile":
        if not 0 < self.min_split_area < self.max_request_area:
            raise ValueError("0 < min_split_area < max_request_area required")
        return self


def _expand_str(value: str) -> str:
    def replacer(match: re.Match[str]) -> str:
        token = match.group(1)
        if ":-" in token:
            key, default = token.split(":-", 1)
            actual = os.getenv(key, "")
            return actual if actual.strip() else default
        actual = os.getenv(token, "")
        if not actual.strip():
            raise ValueError(f"missing environment variable: {token}")
        return actual

    return _VAR_PATTERN.sub(replacer, value)


def _expand_payload(value: Any) -> Any:
    if isinstance(value, str):
        return _expand_str(value)
    if isinstance(value, list):
        return [_expand_payload(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _expand_payload(item) for key, item in value.items()}
    return value


def load_profile(path: Path) -> BotProfile:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    expanded = _expand_payload(data)
    return BotProfile(**expanded)
