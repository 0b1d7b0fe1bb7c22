"""
Genesys Cloud API client with OAuth client-credentials authentication
"""

import logging
import time
import urllib.parse
from typing import Any

import requests

from gcrecordings.exceptions import (
    AuthenticationError,
    PermissionDeniedError,
    RateLimitedError,
    ResourceNotFoundError,
)

# Genesys Cloud environments, keyed by region domain
REGIONS: dict[str, str] = {
    "mypurecloud.com": "Americas (US East)",
    "use2.us-gov-pure.cloud": "Americas (US East 2, FedRAMP)",
    "usw2.pure.cloud": "Americas (US West)",
    "cac1.pure.cloud": "Americas (Canada)",
    "sae1.pure.cloud": "Americas (Sao Paulo)",
    "mypurecloud.ie": "EMEA (Dublin)",
    "euw2.pure.cloud": "EMEA (London)",
    "mypurecloud.de": "EMEA (Frankfurt)",
    "euc2.pure.cloud": "EMEA (Zurich)",
    "mec1.pure.cloud": "EMEA (UAE)",
    "aps1.pure.cloud": "Asia Pacific (Mumbai)",
    "apne2.pure.cloud": "Asia Pacific (Seoul)",
    "apne3.pure.cloud": "Asia Pacific (Osaka)",
    "mypurecloud.com.au": "Asia Pacific (Sydney)",
    "mypurecloud.jp": "Asia Pacific (Tokyo)",
}

# Analytics query page size; no further pages are requested
CONVERSATION_PAGE_SIZE = 100
QUEUE_PAGE_SIZE = 100


class GenesysClient:
    """Client for the Genesys Cloud platform API with token caching"""

    def __init__(self, client_id: str, client_secret: str, region: str = "mypurecloud.com"):
        self.client_id = client_id
        self.client_secret = client_secret
        self.region = self.normalize_region(region)
        self.base_url = f"https://api.{self.region}/api/v2"
        self.token_url = f"https://login.{self.region}/oauth/token"

        # Token caching (in memory during execution)
        self._access_token: str | None = None
        self._token_expires_at: float = 0

    def __repr__(self) -> str:
        """
        String representation that excludes credentials

        Prevents accidental credential exposure in logs, tracebacks, and debugging
        """
        return (
            f"GenesysClient("
            f"region={self.region!r}, "
            f"client_id_set={bool(self.client_id)}, "
            f"token_cached={bool(self._access_token)}"
            f")"
        )

    def clear_credentials(self) -> None:
        """Best-effort removal of credentials and cached token from memory."""
        self.client_id = ""
        self.client_secret = ""
        self._access_token = None

    def __del__(self) -> None:
        try:
            self.clear_credentials()
        except Exception:
            pass  # Ignore errors during finalization

    @staticmethod
    def normalize_region(region: str) -> str:
        """Accept 'sae1.pure.cloud', 'api.sae1.pure.cloud' or a full URL."""
        value = region.strip().lower()
        if "://" in value:
            value = urllib.parse.urlsplit(value).netloc
        value = value.rstrip("/")
        for prefix in ("api.", "login.", "apps."):
            if value.startswith(prefix):
                value = value[len(prefix) :]
                break
        return value

    def authenticate(self) -> str:
        """Exchange client credentials for a bearer token (cached until near expiry)"""
        current_time = time.time()

        # Return cached token if still valid (with 60s buffer)
        if self._access_token and current_time < (self._token_expires_at - 60):
            return self._access_token

        try:
            response = requests.post(
                self.token_url,
                auth=(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=30,
            )
            response.raise_for_status()
        except requests.exceptions.Timeout:
            raise AuthenticationError(
                "Authentication timeout",
                details=f"{self.token_url} did not respond within 30 seconds",
            )
        except requests.exceptions.ConnectionError as e:
            raise AuthenticationError(
                "Connection error during authentication",
                details=f"Could not connect to {self.token_url}: {e}",
            ) from e
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else "unknown"
            raise AuthenticationError(
                f"OAuth token request failed (HTTP {status_code})",
                details="Check GENESYS_CLIENT_ID, GENESYS_CLIENT_SECRET and the selected region",
            ) from e
        except requests.exceptions.RequestException as e:
            raise AuthenticationError("OAuth token request failed", details=f"{e}") from e

        try:
            token_data = response.json()
        except ValueError as e:
            raise AuthenticationError(
                "Invalid OAuth response",
                details=f"Could not parse JSON response from {self.token_url}: {e}",
            ) from e

        if "access_token" not in token_data:
            raise AuthenticationError(
                "Invalid OAuth token response",
                details="Response did not contain required 'access_token' field",
            )

        self._access_token = str(token_data["access_token"])
        self._token_expires_at = current_time + int(token_data.get("expires_in", 3600))
        return self._access_token

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        retry_count: int = 3,
        backoff_factor: float = 1.0,
    ) -> Any:
        """Make authenticated API request with retry logic"""
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        from gcrecordings import __version__

        headers = {
            "Authorization": f"Bearer {self.authenticate()}",
            "Accept": "application/json",
            "User-Agent": f"gcrec/{__version__}",
        }
        if method.upper() in ("POST", "PUT", "PATCH"):
            headers["Content-Type"] = "application/json"

        for attempt in range(retry_count):
            try:
                response = requests.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    json=json_body,
                    timeout=30,
                )

                # Rate limiting and server errors are retried with exponential backoff
                if response.status_code in (429, 500, 502, 503, 504):
                    if attempt < retry_count - 1:
                        wait_time = backoff_factor * (2**attempt)
                        if response.status_code == 429:
                            retry_after = str(response.headers.get("Retry-After") or "").strip()
                            if retry_after.isdigit():
                                wait_time = int(retry_after)
                            logging.warning(
                                f"Rate limit (HTTP 429), retrying in {wait_time}s "
                                f"(attempt {attempt + 1}/{retry_count})"
                            )
                        else:
                            logging.warning(
                                f"Server error (HTTP {response.status_code}), "
                                f"retrying in {wait_time}s (attempt {attempt + 1}/{retry_count})"
                            )
                        time.sleep(wait_time)
                        continue
                    if response.status_code == 429:
                        raise RateLimitedError(
                            "Rate limit exceeded",
                            details="Too many requests to the Genesys Cloud API.",
                        )
                    raise GenesysAPIError(
                        f"Genesys Cloud API server error (HTTP {response.status_code}) "
                        f"after {retry_count} attempts",
                        status_code=response.status_code,
                    )

                response.raise_for_status()
                if response.status_code == 204 or not response.content:
                    return {}
                try:
                    return response.json()
                except ValueError as e:
                    raise GenesysAPIError(
                        f"Genesys Cloud API returned a non-JSON body "
                        f"(HTTP {response.status_code})",
                        status_code=response.status_code,
                    ) from e

            except (
                requests.exceptions.Timeout,
                requests.exceptions.ConnectionError,
                requests.exceptions.ChunkedEncodingError,
            ) as e:
                if attempt < retry_count - 1:
                    wait_time = backoff_factor * (2**attempt)
                    logging.warning(
                        f"Network error ({type(e).__name__}), "
                        f"retrying in {wait_time}s (attempt {attempt + 1}/{retry_count}): {e}"
                    )
                    time.sleep(wait_time)
                    continue
                raise GenesysAPIError(
                    f"Network request failed after retries: {type(e).__name__}: {e}"
                ) from e

            except requests.exceptions.HTTPError as e:
                error_data: dict[str, Any] = {}
                try:
                    error_data = e.response.json()
                except Exception:
                    pass
                if not isinstance(error_data, dict):
                    error_data = {}

                api_message = error_data.get("message", str(e))
                status_code = e.response.status_code

                if status_code == 401:
                    self._access_token = None
                    raise AuthenticationError(
                        "Authentication failed",
                        details="Bearer token was rejected by the Genesys Cloud API",
                    )
                elif status_code == 403:
                    raise PermissionDeniedError(
                        "Permission denied",
                        details=f"Check the OAuth client's role permissions: {api_message}",
                    )
                elif status_code == 404:
                    raise ResourceNotFoundError("Resource not found", details=f"{api_message}")
                raise GenesysAPIError(
                    f"Genesys Cloud API error: {api_message}",
                    status_code=status_code,
                    details=error_data,
                )

            except requests.exceptions.RequestException as e:
                raise GenesysAPIError(
                    f"Genesys Cloud API request failed: {type(e).__name__}: {e}"
                ) from e

        raise GenesysAPIError("Max retries exceeded")

    def query_conversations(
        self, queue_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]:
        """Voice conversations for a queue between two UTC dates (inclusive, first page only)"""
        body = {
            "interval": f"{start_date}T00:00:00.000Z/{end_date}T23:59:59.999Z",
            "order": "desc",
            "orderBy": "conversationStart",
            "paging": {"pageSize": CONVERSATION_PAGE_SIZE, "pageNumber": 1},
            "segmentFilters": [
                {
                    "type": "and",
                    "predicates": [
                        {
                            "type": "dimension",
                            "dimension": "queueId",
                            "operator": "matches",
                            "value": queue_id,
                        },
                        {
                            "type": "dimension",
                            "dimension": "mediaType",
                            "operator": "matches",
                            "value": "voice",
                        },
                    ],
                }
            ],
        }
        result = self._make_request("POST", "analytics/conversations/details/query", json_body=body)
        return list(result.get("conversations") or [])

    def get_recording_metadata(self, conversation_id: str) -> list[dict[str, Any]]:
        """Recording metadata entries for one conversation"""
        encoded = urllib.parse.quote(conversation_id, safe="")
        result = self._make_request("GET", f"conversations/{encoded}/recordingmetadata")
        return list(result or [])

    def create_batch_request(self, body: dict[str, Any]) -> dict[str, Any]:
        """Submit a recording batch download job"""
        result: dict[str, Any] = self._make_request(
            "POST", "recording/batchrequests", json_body=body
        )
        return result

    def get_batch_request(self, batch_id: str) -> dict[str, Any]:
        """Current status of a recording batch download job"""
        encoded = urllib.parse.quote(batch_id, safe="")
        result: dict[str, Any] = self._make_request("GET", f"recording/batchrequests/{encoded}")
        return result

    def list_queues(self, page_size: int = QUEUE_PAGE_SIZE) -> list[dict[str, Any]]:
        """Routing queues visible to the OAuth client (first page only)"""
        result = self._make_request("GET", "routing/queues", params={"pageSize": page_size})
        return list(result.get("entities") or [])


class GenesysAPIError(Exception):
    """Custom exception for Genesys Cloud API errors"""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}
