"""
Strava API access.

StravaClient is a thin ``requests`` wrapper around the v3 REST endpoints.
ResilientApiClient owns the current StravaClient and runs every remote
operation through ``call()``, which recovers from an expired access token by
refreshing it once and retrying once.
"""

import enum
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, TypeVar

import requests

from .constants import (
    DEFAULT_STREAM_RESOLUTION,
    DEFAULT_TIMEOUT,
    MAX_PER_PAGE,
    STRAVA_API_BASE_URL,
)
from .credentials import CredentialStore
from .exceptions import APIError

__all__ = [
    "StravaClient",
    "ResilientApiClient",
    "CallState",
    "is_authorization_error",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StravaClient:
    """Authenticated session against the Strava v3 API."""

    def __init__(
        self,
        access_token: str,
        timeout: Optional[int] = None,
        base_url: str = STRAVA_API_BASE_URL,
    ):
        self.access_token = access_token
        self.timeout = timeout or DEFAULT_TIMEOUT
        self.base_url = base_url
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {self.access_token}",
                "Accept": "application/json",
            }
        )

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``path``; any non-200 response raises APIError."""
        url = f"{self.base_url}{path}"
        resp = self.session.get(url, params=params or {}, timeout=self.timeout)
        if resp.status_code != 200:
            raise APIError(resp.status_code, resp.text, operation=path)
        return resp.json()

    def close(self) -> None:
        self.session.close()

    def get_athlete(self) -> Dict[str, Any]:
        return self._get("/athlete")

    def list_activities(
        self,
        after: Optional[int] = None,
        before: Optional[int] = None,
        page: int = 1,
        per_page: int = 30,
    ) -> List[Dict[str, Any]]:
        """List the athlete's activities, newest first.

        Args:
            after: Only activities starting after this epoch timestamp.
            before: Only activities starting before this epoch timestamp.
            page: 1-based page number.
            per_page: Page size, capped at 100 by Strava.
        """
        params: Dict[str, Any] = {"page": page, "per_page": min(per_page, MAX_PER_PAGE)}
        if after is not None:
            params["after"] = int(after)
        if before is not None:
            params["before"] = int(before)
        return self._get("/athlete/activities", params=params)

    def get_activity(self, activity_id: int) -> Dict[str, Any]:
        return self._get(f"/activities/{activity_id}")

    def get_activity_streams(
        self,
        activity_id: int,
        keys: Sequence[str],
        resolution: str = DEFAULT_STREAM_RESOLUTION,
    ) -> Dict[str, Any]:
        """Fetch time-series streams keyed by type.

        Args:
            keys: Stream types, e.g. ``heartrate``, ``time``, ``watts``.
            resolution: ``low``, ``medium`` or ``high``.

        Returns:
            Mapping of stream type to ``{"data": [...], ...}``. Types the
            activity does not record are absent.
        """
        params = {
            "keys": ",".join(keys),
            "key_by_type": "true",
            "resolution": resolution,
        }
        return self._get(f"/activities/{activity_id}/streams", params=params)

    def get_activity_laps(self, activity_id: int) -> List[Dict[str, Any]]:
        return self._get(f"/activities/{activity_id}/laps")


def is_authorization_error(error: BaseException) -> bool:
    """Check whether an exception means the access token was rejected (401)."""
    if isinstance(error, APIError):
        return error.is_authorization_error
    if isinstance(error, requests.HTTPError):
        return error.response is not None and error.response.status_code == 401
    return False


class CallState(enum.Enum):
    """Progress of a single ``ResilientApiClient.call``."""

    ATTEMPTING = "attempting"
    RETRIED_AFTER_REFRESH = "retried_after_refresh"


class ResilientApiClient:
    """Runs Strava operations with one refresh-and-retry on authorization failure.

    Args:
        credentials: The process-wide CredentialStore.
        timeout: HTTP timeout in seconds for API requests.
        client_factory: Builds a StravaClient from an access token; swapped in
            tests.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        timeout: Optional[int] = None,
        client_factory: Optional[Callable[[str], StravaClient]] = None,
    ):
        self.credentials = credentials
        self.timeout = timeout
        self._client_factory = client_factory or (
            lambda token: StravaClient(token, timeout=self.timeout)
        )
        self.client = self._client_factory(credentials.access_token)

    def _rebuild_client(self) -> None:
        old_client = self.client
        self.client = self._client_factory(self.credentials.access_token)
        if isinstance(old_client, StravaClient):
            old_client.close()

    def call(self, operation_name: str, fn: Callable[[StravaClient], T]) -> T:
        """Invoke ``fn`` with the current client, retrying once after a refresh.

        The call moves from ATTEMPTING to RETRIED_AFTER_REFRESH at most once,
        and only on an authorization failure. Every other outcome is terminal:

        - success returns the result
        - a non-authorization error propagates immediately
        - an error from the refresh itself propagates
        - any error after the retry propagates

        Args:
            operation_name: Label used in log messages.
            fn: Performs exactly one remote operation with the given client.
        """
        state = CallState.ATTEMPTING
        while True:
            try:
                return fn(self.client)
            except (APIError, requests.HTTPError) as e:
                if state is CallState.RETRIED_AFTER_REFRESH or not is_authorization_error(e):
                    logger.error("Error in %s: %s", operation_name, e)
                    raise
                logger.warning(
                    "Authentication error in %s, refreshing access token", operation_name
                )

            self.credentials.refresh()
            self._rebuild_client()
            state = CallState.RETRIED_AFTER_REFRESH
            logger.info("Retrying %s after token refresh", operation_name)

    def get_athlete(self) -> Dict[str, Any]:
        return self.call("get_athlete", lambda client: client.get_athlete())

    def list_activities(
        self,
        after: Optional[int] = None,
        before: Optional[int] = None,
        page: int = 1,
        per_page: int = 30,
    ) -> List[Dict[str, Any]]:
        return self.call(
            f"list_activities(page={page})",
            lambda client: client.list_activities(
                after=after, before=before, page=page, per_page=per_page
            ),
        )

    def iter_activities(
        self,
        after: Optional[int] = None,
        before: Optional[int] = None,
        limit: Optional[int] = None,
        per_page: int = MAX_PER_PAGE,
    ) -> Iterator[Dict[str, Any]]:
        """Yield activities across pages until a short page or ``limit``.

        Each page is its own resilient call.
        """
        if limit is not None:
            per_page = min(per_page, limit)
        yielded = 0
        page = 1
        while True:
            activities = self.list_activities(
                after=after, before=before, page=page, per_page=per_page
            )
            for activity in activities:
                if limit is not None and yielded >= limit:
                    return
                yield activity
                yielded += 1
            if len(activities) < per_page or (limit is not None and yielded >= limit):
                return
            page += 1

    def get_activity(self, activity_id: int) -> Dict[str, Any]:
        return self.call(
            f"get_activity({activity_id})", lambda client: client.get_activity(activity_id)
        )

    def get_activity_streams(
        self,
        activity_id: int,
        keys: Sequence[str],
        resolution: str = DEFAULT_STREAM_RESOLUTION,
    ) -> Dict[str, Any]:
        return self.call(
            f"get_activity_streams({activity_id})",
            lambda client: client.get_activity_streams(activity_id, keys, resolution=resolution),
        )

    def get_activity_laps(self, activity_id: int) -> List[Dict[str, Any]]:
        return self.call(
            f"get_activity_laps({activity_id})",
            lambda client: client.get_activity_laps(activity_id),
        )
