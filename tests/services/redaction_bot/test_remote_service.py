from __future__ import annotations

import pytest
import requests

from redaction_bot import remote as remote_module
from redaction_bot.areas import Area
from redaction_bot.errors import ChangesetError, MapRequestError, RedactionFailedError, ThrottleExhaustedError
from redaction_bot.models import EntityKind, EntityRef
from redaction_bot.remote import RemoteEditService


class _StubResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text


class _StubSession:
    def __init__(self, responses: list[object]) -> None:
        self._responses = list(responses)
        self.headers: dict[str, str] = {}
        self.calls: list[dict[str, object]] = []

    def request(self, method: str, url: str, **kwargs: object) -> object:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self._responses:
            raise AssertionError("no stub responses configured")
        next_item = self._responses.pop(0)
        if isinstance(next_item, Exception):
            raise next_item
        return next_item


def _service(session: _StubSession, **kwargs: object) -> RemoteEditService:
    return RemoteEditService(
        api_site="https://api.test/",
        access_token="tok",
        session=session,  # type: ignore[arg-type]
        **kwargs,  # type: ignore[arg-type]
    )


def test_open_changeset_returns_remote_id() -> None:
    session = _StubSession([_StubResponse(200, "1234\n")])
    service = _service(session)
    changeset_id = service.open_changeset({"created_by": "Redaction bot", "bot": "yes"})
    assert changeset_id == "1234"
    call = session.calls[0]
    assert call["method"] == "PUT"
    assert call["url"] == "https://api.test/api/0.6/changeset/create"
    assert call["timeout"] == 320.0
    assert '<tag k="created_by" v="Redaction bot" />' in str(call["data"])
    assert session.headers["Authorization"] == "Bearer tok"


def test_open_changeset_failure_is_changeset_error() -> None:
    service = _service(_StubSession([_StubResponse(401, "unauthorized")]))
    with pytest.raises(ChangesetError):
        service.open_changeset({})


def test_upload_failure_and_transport_errors_are_changeset_errors() -> None:
    service = _service(_StubSession([_StubResponse(409, "conflict"), requests.ConnectionError("down")]))
    with pytest.raises(ChangesetError):
        service.upload_changeset("12", "<osmChange/>")
    with pytest.raises(ChangesetError):
        service.upload_changeset("12", "<osmChange/>")


def test_upload_posts_payload() -> None:
    session = _StubSession([_StubResponse(200, "")])
    _service(session).upload_changeset("12", "<osmChange/>")
    assert session.calls[0]["method"] == "POST"
    assert session.calls[0]["url"] == "https://api.test/api/0.6/changeset/12/upload"
    assert session.calls[0]["data"] == "<osmChange/>"


def test_apply_redaction_url() -> None:
    session = _StubSession([_StubResponse(200, "")])
    _service(session).apply_redaction(EntityRef(EntityKind.WAY, 77, 3), 2)
    assert session.calls[0]["method"] == "POST"
    assert session.calls[0]["url"] == "https://api.test/api/0.6/way/77/3/redact?redaction=2"


def test_apply_redaction_failure_is_fatal() -> None:
    service = _service(_StubSession([_StubResponse(403, "no")]))
    with pytest.raises(RedactionFailedError):
        service.apply_redaction(EntityRef(EntityKind.NODE, 5, 2), 1)


def test_fetch_map_backs_off_linearly_when_throttled(monkeypatch) -> None:
    sleeps: list[float] = []
    monkeypatch.setattr(remote_module.time, "sleep", sleeps.append)
    session = _StubSession([_StubResponse(509), _StubResponse(509), _StubResponse(200, "<osm/>")])
    body = _service(session).fetch_map(Area(minlat=1.0, maxlat=1.5, minlon=2.0, maxlon=2.5))
    assert body == "<osm/>"
    assert sleeps == [60, 120]
    assert len(session.calls) == 3
    assert session.calls[0]["url"] == "https://api.test/api/0.6/map?bbox=2.0,1.0,2.5,1.5"


def test_fetch_map_gives_up_after_attempt_limit(monkeypatch) -> None:
    sleeps: list[float] = []
    monkeypatch.setattr(remote_module.time, "sleep", sleeps.append)
    session = _StubSession([_StubResponse(509) for _ in range(10)])
    with pytest.raises(ThrottleExhaustedError):
        _service(session).fetch_map(Area(minlat=1.0, maxlat=1.5, minlon=2.0, maxlon=2.5))
    assert len(session.calls) == 10
    assert sleeps == [60 * attempt for attempt in range(1, 10)]


def test_fetch_map_other_status_raises() -> None:
    service = _service(_StubSession([_StubResponse(400, "too many")]))
    with pytest.raises(MapRequestError) as excinfo:
        service.fetch_map(Area(minlat=1.0, maxlat=1.5, minlon=2.0, maxlon=2.5))
    assert excinfo.value.status_code == 400
    assert excinfo.value.body == "too many"
