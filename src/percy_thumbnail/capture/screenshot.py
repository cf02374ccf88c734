"""Client for the server-side screenshot endpoint."""

import logging
import math

import requests

from percy_thumbnail.errors import NetworkError
from percy_thumbnail.models.capture import AuthContext

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Thumbnail capture failed. Please try the 'Upload Image' option."


class ScreenshotClient:
    """Fetches a rendered frame from `GET /videos/{id}/screenshot`."""

    def __init__(
        self,
        base_url: str,
        auth: AuthContext,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, video_id: str, timestamp: float) -> bytes:
        """Return the screenshot bytes at `timestamp` (floored to whole seconds).

        Raises:
            NetworkError: Missing token, non-2xx response, connectivity failure
                or an empty body.
        """
        if not self.auth.token:
            raise NetworkError("missing auth token", "Authentication token not found. Please sign in again.")

        url = f"{self.base_url}/videos/{video_id}/screenshot"
        params = {"timestamp": math.floor(max(0.0, timestamp))}
        logger.info(f"Requesting server screenshot: {url} at {params['timestamp']}s")

        try:
            response = self.session.get(url, params=params, headers=self.auth.headers(), timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise NetworkError("timeout", FALLBACK_MESSAGE) from e
        except requests.exceptions.ConnectionError as e:
            raise NetworkError("connection failed", FALLBACK_MESSAGE) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"request failed: {e}", FALLBACK_MESSAGE) from e

        if response.status_code in (401, 403):
            raise NetworkError("auth token rejected", FALLBACK_MESSAGE, status_code=response.status_code)
        if not response.ok:
            raise NetworkError(
                f"server returned {response.status_code}", FALLBACK_MESSAGE, status_code=response.status_code,
            )
        if not response.content:
            raise NetworkError("empty screenshot", FALLBACK_MESSAGE, status_code=response.status_code)

        logger.debug(f"Received screenshot ({len(response.content):,} bytes)")
        return response.content
