# pylint: disable=missing-module-docstring,missing-function-docstring

from typing import Any

import pytest
import requests

from adapters.queue.rest_queue import PlayQueueClient, QueueError
from orchestrator.enums.direction import QueueDirection
from playback.track import Track


class FakeResponse:
    def __init__(self, status_code: int, body: Any) -> None:
        self.status_code = status_code
        self._body = body

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeHttp:
    def __init__(self, routes: dict[str, FakeResponse | Exception]) -> None:
        self.routes = routes
        self.calls: list[tuple[str, dict[str, str] | None, float]] = []
        self.closed = False

    def get(self, url: str, params: dict[str, str] | None = None, timeout: float = 0) -> FakeResponse:
        self.calls.append((url, params, timeout))
        path = url.removeprefix("https://api.test")
        route = self.routes[path]
        if isinstance(route, Exception):
            raise route
        return route

    def close(self) -> None:
        self.closed = True


def _client(routes: dict[str, FakeResponse | Exception]) -> tuple[PlayQueueClient, FakeHttp]:
    http = FakeHttp(routes)
    client = PlayQueueClient(
        base_url="https://api.test/",
        user_email="ana@example.com",
        timeout_s=2.5,
        session=http,  # type: ignore[arg-type]
    )
    return client, http


def test_single_item_queue() -> None:
    client, http = _client({"/cola-reproduccion/cola": FakeResponse(200, {"cola": [{"id": 1}]})})

    assert client.is_single_item() is True
    assert http.calls == [
        ("https://api.test/cola-reproduccion/cola", {"userEmail": "ana@example.com"}, 2.5)
    ]


def test_multi_item_or_missing_queue_is_not_single() -> None:
    client, _ = _client({"/cola-reproduccion/cola": FakeResponse(200, {"cola": [1, 2]})})
    assert client.is_single_item() is False

    client, _ = _client({"/cola-reproduccion/cola": FakeResponse(200, {})})
    assert client.is_single_item() is False


def test_step_next_resolves_name() -> None:
    client, _ = _client({
        "/cola-reproduccion/siguiente-cancion": FakeResponse(200, {"siguienteCancionId": 9}),
        "/playlists/song-details/9": FakeResponse(200, {"Nombre": "Song Nine"}),
    })

    assert client.step(QueueDirection.NEXT) == Track(name="Song Nine", track_id=9)


def test_step_previous_resolves_name() -> None:
    client, _ = _client({
        "/cola-reproduccion/anterior": FakeResponse(200, {"cancionAnteriorId": 4}),
        "/playlists/song-details/4": FakeResponse(200, {"Nombre": "Song Four"}),
    })

    assert client.step(QueueDirection.PREVIOUS) == Track(name="Song Four", track_id=4)


@pytest.mark.parametrize(
    "routes",
    [
        {"/cola-reproduccion/siguiente-cancion": FakeResponse(500, {})},
        {"/cola-reproduccion/siguiente-cancion": FakeResponse(200, {"siguienteCancionId": None})},
        {"/cola-reproduccion/siguiente-cancion": FakeResponse(200, ValueError("bad json"))},
        {"/cola-reproduccion/siguiente-cancion": FakeResponse(200, [1, 2])},
        {"/cola-reproduccion/siguiente-cancion": requests.ConnectionError("refused")},
        {
            "/cola-reproduccion/siguiente-cancion": FakeResponse(200, {"siguienteCancionId": 9}),
            "/playlists/song-details/9": FakeResponse(200, {"Nombre": ""}),
        },
    ],
)
def test_failures_surface_as_queue_error(routes: dict[str, FakeResponse | Exception]) -> None:
    client, _ = _client(routes)

    with pytest.raises(QueueError):
        client.step(QueueDirection.NEXT)


def test_close_closes_http_session() -> None:
    client, http = _client({})
    client.close()
    assert http.closed
