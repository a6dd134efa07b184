"""
Play queue REST client.

Thin blocking client over the service's play queue endpoints:
- GET /cola-reproduccion/cola?userEmail=            -> {"cola": [...]}
- GET /cola-reproduccion/siguiente-cancion?userEmail= -> {"siguienteCancionId": int}
- GET /cola-reproduccion/anterior?userEmail=        -> {"cancionAnteriorId": int}
- GET /playlists/song-details/{id}                  -> {"Nombre": str, ...}

Design constraints:
- No retries, no caching
- Blocking (requests); the runtime calls it from a worker thread
- Every failure surfaces as QueueError
"""

from __future__ import annotations

from typing import Any

import requests

from orchestrator.enums.direction import QueueDirection
from playback.track import Track


class QueueError(Exception):
    """Raised when the play queue service cannot answer a request."""


class PlayQueueClient:
    """
    Play queue navigation for one user.
    """

    def __init__(
        self,
        *,
        base_url: str,
        user_email: str,
        timeout_s: float,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._user_email = user_email
        self._timeout_s = timeout_s
        self._http = session or requests.Session()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_single_item(self) -> bool:
        """True when the user's queue holds exactly one song."""
        data = self._get("/cola-reproduccion/cola", params={"userEmail": self._user_email})
        queue = data.get("cola")
        return isinstance(queue, list) and len(queue) == 1

    def step(self, direction: QueueDirection) -> Track:
        """
        Move the server-side queue cursor and return the new current track.
        """
        if direction is QueueDirection.NEXT:
            data = self._get(
                "/cola-reproduccion/siguiente-cancion",
                params={"userEmail": self._user_email},
            )
            song_id = data.get("siguienteCancionId")
        else:
            data = self._get(
                "/cola-reproduccion/anterior",
                params={"userEmail": self._user_email},
            )
            song_id = data.get("cancionAnteriorId")

        if not isinstance(song_id, int):
            raise QueueError(f"queue returned no song id for {direction.value}: {data!r}")

        return Track(name=self.song_name(song_id), track_id=song_id)

    def song_name(self, song_id: int) -> str:
        """Resolve a song id to its display name."""
        data = self._get(f"/playlists/song-details/{song_id}")
        name = data.get("Nombre")
        if not isinstance(name, str) or not name:
            raise QueueError(f"song {song_id} has no name")
        return name

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _get(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            response = self._http.get(url, params=params, timeout=self._timeout_s)
        except requests.RequestException as e:
            raise QueueError(f"GET {path} failed: {e}") from e

        if not response.ok:
            raise QueueError(f"GET {path} returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise QueueError(f"GET {path} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise QueueError(f"GET {path} returned {type(data).__name__}, expected object")
        return data
