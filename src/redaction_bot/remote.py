"""Client for the remote versioned-entity API (changesets, redactions, map reads)."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Any, Mapping

import requests

from .areas import Area
from .errors import ChangesetError, MapRequestError, RedactionFailedError, ThrottleExhaustedError
from .models import EntityRef
from .osmchange import render_changeset_request

logger = logging.getLogger(__name__)

HTTP_THROTTLED = 509
# the API gives up after 300 seconds; wait longer so its answer reaches us
DEFAULT_TIMEOUT_SECONDS = 320.0
XML_HEADERS = {"Content-Type": "text/xml"}


@dataclass
class RemoteEditService:
    api_site: str
    access_token: str | None = None
    api_prefix: str = "/api/0.6"
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_map_attempts: int = 10
    throttle_backoff_seconds: float = 60.0
    session: requests.Session | None = None

    def __post_init__(self) -> None:
        if self.max_map_attempts < 1:
            raise ValueError("max_map_attempts must be >= 1")
        self._session = self.session or requests.Session()
        if self.access_token:
            self._session.headers["Authorization"] = f"Bearer {self.access_token}"

    def open_changeset(self, tags: Mapping[str, str]) -> str:
        body = render_changeset_request(tags)
        try:
            response = self._request("PUT", "/changeset/create", data=body, headers=XML_HEADERS)
        except requests.RequestException as exc:
            raise ChangesetError(f"CHANGESET_OPEN_FAILED:{exc}") from exc
        if not _is_success(response):
            logger.error("RB: failed to open changeset (status=%s)", response.status_code)
            raise ChangesetError(f"CHANGESET_OPEN_FAILED:{response.status_code}")
        return str(response.text).strip()

    def upload_changeset(self, changeset_id: str, payload: str) -> None:
        try:
            response = self._request("POST", f"/changeset/{changeset_id}/upload", data=payload, headers=XML_HEADERS)
        except requests.RequestException as exc:
            raise ChangesetError(f"CHANGESET_UPLOAD_FAILED:{exc}") from exc
        if not _is_success(response):
            # someone editing the same area is the usual cause
            logger.error(
                "RB: changeset failed to apply (changeset_id=%s). Response %s:\n%s",
                changeset_id,
                response.status_code,
                _response_text(response),
            )
            raise ChangesetError(f"CHANGESET_UPLOAD_FAILED:{response.status_code}")
        logger.info("RB: uploaded changeset %s", changeset_id)

    def apply_redaction(self, entity: EntityRef, redaction_id: int) -> None:
        path = f"/{entity.kind.value}/{entity.id}/{entity.version}/redact?redaction={redaction_id}"
        try:
            response = self._request("POST", path)
        except requests.RequestException as exc:
            logger.error("RB: redaction request failed (entity=%s): %s", entity, exc)
            raise RedactionFailedError(f"REDACTION_FAILED:{exc}") from exc
        if not _is_success(response):
            logger.error(
                "RB: failed to redact element - response: %s\n%s",
                response.status_code,
                _response_text(response),
            )
            raise RedactionFailedError(f"REDACTION_FAILED:{response.status_code}")

    def fetch_map(self, area: Area, attempt: int = 1) -> str:
        """Read the map for ``area``, sleeping ``backoff * attempt`` seconds after each throttled reply."""
        while True:
            if attempt > self.max_map_attempts:
                raise ThrottleExhaustedError(f"MAP_THROTTLED:{self.max_map_attempts}")
            logger.debug("RB: map call (bbox=%s, attempt=%d)", area.bbox(), attempt)
            response = self._request("GET", f"/map?bbox={area.bbox()}")
            if response.status_code == HTTP_THROTTLED:
                if attempt >= self.max_map_attempts:
                    raise ThrottleExhaustedError(f"MAP_THROTTLED:{attempt}")
                delay = self.throttle_backoff_seconds * attempt
                logger.warning("RB: throttled on attempt %d, sleeping %s seconds", attempt, delay)
                time.sleep(delay)
                attempt += 1
                continue
            if response.status_code != 200:
                raise MapRequestError(response.status_code, _response_text(response))
            return str(response.text)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self.api_site.rstrip("/") + self.api_prefix + path
        return self._session.request(method, url, timeout=self.timeout_seconds, **kwargs)


def _is_success(response: Any) -> bool:
    return 200 <= int(response.status_code) < 300


def _response_text(response: Any) -> str:
    return str(getattr(response, "text", ""))[:2048]
