"""
Tests for GenesysClient authentication, retry logic and error mapping
"""

from unittest.mock import Mock, patch

import pytest
import requests

from gcrecordings.exceptions import (
    AuthenticationError,
    PermissionDeniedError,
    RateLimitedError,
    ResourceNotFoundError,
)
from gcrecordings.genesys_client import GenesysAPIError, GenesysClient


def _token_response():
    return Mock(status_code=200, json=lambda: {"access_token": "token", "expires_in": 3600})


def _http_error_response(status_code, body=None):
    response = Mock(status_code=status_code, headers={})
    response.json = Mock(return_value=body or {})
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    return response


class TestRegionHandling:
    def test_urls_derived_from_region(self):
        client = GenesysClient("cid", "secret", region="sae1.pure.cloud")

        assert client.base_url == "https://api.sae1.pure.cloud/api/v2"
        assert client.token_url == "https://login.sae1.pure.cloud/oauth/token"

    @pytest.mark.parametrize(
        "raw",
        [
            "api.mypurecloud.ie",
            "https://login.mypurecloud.ie/",
            "  MyPureCloud.ie ",
        ],
    )
    def test_normalize_region(self, raw):
        assert GenesysClient.normalize_region(raw) == "mypurecloud.ie"


class TestCredentialProtection:
    def test_repr_excludes_credentials(self):
        client = GenesysClient("secret_client", "very_secret")

        repr_str = repr(client)

        assert "secret_client" not in repr_str
        assert "very_secret" not in repr_str
        assert "client_id_set=True" in repr_str
        assert "token_cached=False" in repr_str

    def test_clear_credentials(self):
        client = GenesysClient("cid", "secret")
        client._access_token = "token"

        client.clear_credentials()

        assert client.client_id == ""
        assert client.client_secret == ""
        assert client._access_token is None


class TestAuthentication:
    @patch("requests.post")
    def test_client_credentials_grant(self, mock_post):
        mock_post.return_value = _token_response()
        client = GenesysClient("cid", "secret", region="mypurecloud.com")

        assert client.authenticate() == "token"

        call = mock_post.call_args
        assert call.args[0] == "https://login.mypurecloud.com/oauth/token"
        assert call.kwargs["auth"] == ("cid", "secret")
        assert call.kwargs["data"] == {"grant_type": "client_credentials"}
        assert call.kwargs["timeout"] == 30

    @patch("requests.post")
    def test_token_is_cached(self, mock_post):
        mock_post.return_value = _token_response()
        client = GenesysClient("cid", "secret")

        client.authenticate()
        client.authenticate()

        assert mock_post.call_count == 1

    @patch("requests.post")
    def test_rejected_credentials(self, mock_post):
        mock_post.return_value = _http_error_response(401)
        client = GenesysClient("cid", "wrong")

        with pytest.raises(AuthenticationError, match="HTTP 401"):
            client.authenticate()

    @patch("requests.post")
    def test_timeout(self, mock_post):
        mock_post.side_effect = requests.exceptions.Timeout()
        client = GenesysClient("cid", "secret")

        with pytest.raises(AuthenticationError, match="Authentication timeout"):
            client.authenticate()

    @patch("requests.post")
    def test_missing_access_token(self, mock_post):
        mock_post.return_value = Mock(status_code=200, json=lambda: {"expires_in": 3600})
        client = GenesysClient("cid", "secret")

        with pytest.raises(AuthenticationError, match="Invalid OAuth token response"):
            client.authenticate()


class TestRequests:
    @patch("time.sleep")
    @patch("requests.post")
    @patch("requests.request")
    def test_retry_on_rate_limit_uses_retry_after(self, mock_request, mock_post, mock_sleep):
        mock_post.return_value = _token_response()
        limited = Mock(status_code=429, headers={"Retry-After": "7"})
        ok = Mock(status_code=200, content=b"{}", json=lambda: {"entities": []})
        mock_request.side_effect = [limited, ok]

        client = GenesysClient("cid", "secret")
        assert client.list_queues() == []

        assert mock_request.call_count == 2
        mock_sleep.assert_called_once_with(7)

    @patch("time.sleep")
    @patch("requests.post")
    @patch("requests.request")
    def test_rate_limit_exhausted(self, mock_request, mock_post, mock_sleep):
        mock_post.return_value = _token_response()
        mock_request.return_value = Mock(status_code=429, headers={})

        client = GenesysClient("cid", "secret")
        with pytest.raises(RateLimitedError):
            client.list_queues()
        assert mock_request.call_count == 3

    @patch("time.sleep")
    @patch("requests.post")
    @patch("requests.request")
    def test_network_errors_retried_then_raised(self, mock_request, mock_post, mock_sleep):
        mock_post.return_value = _token_response()
        mock_request.side_effect = requests.exceptions.ConnectionError("down")

        client = GenesysClient("cid", "secret")
        with pytest.raises(GenesysAPIError, match="Network request failed"):
            client.get_batch_request("batch-1")
        assert mock_request.call_count == 3

    @pytest.mark.parametrize(
        "status_code, expected",
        [
            (401, AuthenticationError),
            (403, PermissionDeniedError),
            (404, ResourceNotFoundError),
            (400, GenesysAPIError),
        ],
    )
    @patch("requests.post")
    @patch("requests.request")
    def test_http_error_mapping(self, mock_request, mock_post, status_code, expected):
        mock_post.return_value = _token_response()
        mock_request.return_value = _http_error_response(
            status_code, {"message": "nope", "code": "bad.request"}
        )

        client = GenesysClient("cid", "secret")
        with pytest.raises(expected):
            client.get_recording_metadata("conv-1")

    @patch("requests.post")
    @patch("requests.request")
    def test_non_json_body_raises_api_error(self, mock_request, mock_post):
        """An HTML gateway page with HTTP 200 surfaces as GenesysAPIError"""
        mock_post.return_value = _token_response()
        response = Mock(status_code=200, content=b"<html>Bad Gateway</html>")
        response.json.side_effect = requests.exceptions.JSONDecodeError(
            "Expecting value", "<html>", 0
        )
        mock_request.return_value = response

        client = GenesysClient("cid", "secret")
        with pytest.raises(GenesysAPIError, match="non-JSON") as exc_info:
            client.get_batch_request("b1")
        assert exc_info.value.status_code == 200

    @patch("requests.post")
    @patch("requests.request")
    def test_other_request_errors_wrapped(self, mock_request, mock_post):
        mock_post.return_value = _token_response()
        mock_request.side_effect = requests.exceptions.InvalidURL("bad url")

        client = GenesysClient("cid", "secret")
        with pytest.raises(GenesysAPIError, match="InvalidURL"):
            client.get_recording_metadata("c1")
        assert mock_request.call_count == 1

    @patch("requests.post")
    @patch("requests.request")
    def test_conversation_query_body(self, mock_request, mock_post):
        mock_post.return_value = _token_response()
        mock_request.return_value = Mock(
            status_code=200,
            content=b"{}",
            json=lambda: {"conversations": [{"conversationId": "c1"}]},
        )

        client = GenesysClient("cid", "secret", region="sae1.pure.cloud")
        conversations = client.query_conversations("queue-1", "2024-01-01", "2024-01-02")

        assert conversations == [{"conversationId": "c1"}]
        call = mock_request.call_args
        assert call.args == (
            "POST",
            "https://api.sae1.pure.cloud/api/v2/analytics/conversations/details/query",
        )
        body = call.kwargs["json"]
        assert body["interval"] == "2024-01-01T00:00:00.000Z/2024-01-02T23:59:59.999Z"
        assert body["order"] == "desc"
        assert body["orderBy"] == "conversationStart"
        assert body["paging"] == {"pageSize": 100, "pageNumber": 1}
        predicates = body["segmentFilters"][0]["predicates"]
        assert {"dimension": "queueId", "value": "queue-1"}.items() <= predicates[0].items()
        assert {"dimension": "mediaType", "value": "voice"}.items() <= predicates[1].items()
        assert call.kwargs["headers"]["Authorization"] == "Bearer token"

    @patch("requests.post")
    @patch("requests.request")
    def test_batch_endpoints(self, mock_request, mock_post):
        mock_post.return_value = _token_response()
        mock_request.return_value = Mock(status_code=200, content=b"{}", json=lambda: {"id": "b1"})

        client = GenesysClient("cid", "secret")
        client.create_batch_request({"batchDownloadRequestList": []})
        assert mock_request.call_args.args == (
            "POST",
            "https://api.mypurecloud.com/api/v2/recording/batchrequests",
        )

        client.get_batch_request("b1")
        assert mock_request.call_args.args == (
            "GET",
            "https://api.mypurecloud.com/api/v2/recording/batchrequests/b1",
        )
