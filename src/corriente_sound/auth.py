from __future__ import annotations

import logging
import threading
import time
from typing import Callable

import requests

from corriente_sound.errors import UpstreamTimeout, UpstreamUnavailable

logger = logging.getLogger(__name__)

TOKEN_URL = "https://accounts.spotify.com/api/token"
# Refresh this many seconds before the catalog says the token expires.
REFRESH_MARGIN_S = 300


class SpotifyTokenProvider:
    """Client-credentials token cache owned by one catalog client.

    The token and its expiry are only touched under ``_lock``; callers see
    nothing but :meth:`get_token`. Also usable as a spotipy ``auth_manager``.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        timeout: float = 5.0,
        refresh_margin: float = REFRESH_MARGIN_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout
        self._refresh_margin = refresh_margin
        self._clock = clock
        self._lock = threading.Lock()
        self._token = ""
        self._expires_at = 0.0

    def get_token(self) -> str:
        with self._lock:
            if self._token and self._clock() < self._expires_at - self._refresh_margin:
                return self._token
            self._token, self._expires_at = self._request_token()
            return self._token

    def get_access_token(self, as_dict: bool = False) -> str:
        return self.get_token()

    def _request_token(self) -> tuple[str, float]:
        try:
            response = requests.post(
                TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=(self._client_id, self._client_secret),
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
            token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 3600))
        except requests.exceptions.Timeout as exc:
            raise UpstreamTimeout("Spotify token request timed out") from exc
        except requests.exceptions.RequestException as exc:
            raise UpstreamUnavailable(f"Spotify token request failed: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamUnavailable("Spotify token response was malformed") from exc

        logger.info("Obtained new Spotify access token (expires in %.0fs)", expires_in)
        return token, self._clock() + expires_in
