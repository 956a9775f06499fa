"""
Backend HTTP client.
Thin synchronous wrapper around httpx for the goal-tracking REST API.

Setup:
1. Set GOALTRACKER_API_URL (default http://localhost:3000/api)
2. Optionally set GOALTRACKER_API_TOKEN for bearer authentication
3. Optionally set GOALTRACKER_API_TIMEOUT in seconds
"""

from typing import Any, Optional

import httpx

from ..config import API_BASE_URL, API_TIMEOUT_SECONDS, API_TOKEN
from ..exceptions import GoalTrackerError
from ..logger import setup_logger

logger = setup_logger(__name__)


class ApiError(GoalTrackerError):
    """The backend could not be reached or answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.path = path

    @property
    def is_unreachable(self) -> bool:
        """True when no HTTP response was received at all."""
        return self.status_code is None


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if isinstance(message, list):
            return "; ".join(str(m) for m in message)
        if message:
            return str(message)
    return response.text


class ApiClient:
    """
    JSON client for the backend.

    Every method returns the decoded JSON body (None for empty responses)
    or raises ApiError.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: Optional[str] = None,
        timeout: float = API_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        token = API_TOKEN if token is None else token
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self.base_url = base_url
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        logger.debug(f"{method} {self.base_url}{path}")

        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Backend timeout on {method} {path}")
            raise ApiError(f"Request timed out: {method} {path}", path=path) from e
        except httpx.HTTPError as e:
            logger.error(f"Backend connection error on {method} {path}: {e}")
            raise ApiError(f"Could not reach {self.base_url}: {e}", path=path) from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"Backend returned {response.status_code} for {method} {path}: {message}")
            raise ApiError(message, status_code=response.status_code, path=path)

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {path}", status_code=response.status_code, path=path) from e

    def get(self, path: str, params: Optional[dict] = None) -> Any:
        return self._request("GET", path, params=params)

    def post(self, path: str, json: Optional[dict] = None) -> Any:
        return self._request("POST", path, json=json)

    def put(self, path: str, json: Optional[dict] = None) -> Any:
        return self._request("PUT", path, json=json)

    def patch(self, path: str, json: Optional[dict] = None) -> Any:
        return self._request("PATCH", path, json=json)

    def delete(self, path: str) -> Any:
        return self._request("DELETE", path)
