"""
Unit tests for the token service client
"""
from unittest.mock import Mock

import pytest
import requests

from xero_token.api.client import TokenServiceClient


def _response(status_code=200, body=None):
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    response.text = str(body)
    response.json.return_value = body
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


@pytest.fixture
def session():
    session = Mock(spec=requests.Session)
    session.headers = {}
    return session


class TestTokenServiceClient:
    """Test requests against the token server"""

    def test_get_token(self, session):
        session.get.return_value = _response(body={"access_token": "abc", "token_type": "Bearer", "expires_in": 600})
        client = TokenServiceClient("http://localhost:3000/", api_key="k", session=session)

        data = client.get_token()

        assert data["access_token"] == "abc"
        assert session.headers["x-api-key"] == "k"
        session.get.assert_called_once_with("http://localhost:3000/token", params=None, timeout=90)

    def test_force_param(self, session):
        session.get.return_value = _response(body={"access_token": "abc", "token_type": "Bearer", "expires_in": 1})
        client = TokenServiceClient(session=session)

        client.get_token(force=True)

        assert session.get.call_args.kwargs["params"] == {"force": "true"}

    def test_error_status_raises(self, session):
        session.get.return_value = _response(500, {"status": "error", "message": "Timed out"})
        client = TokenServiceClient(session=session)

        with pytest.raises(requests.HTTPError):
            client.get_token()

    def test_health(self, session):
        session.get.return_value = _response(body={"ok": True})

        assert TokenServiceClient(session=session).health() is True

    def test_health_down(self, session):
        session.get.side_effect = requests.ConnectionError("refused")

        assert TokenServiceClient(session=session).health() is False

    def test_authorized_session_sets_bearer_header(self, session):
        session.get.return_value = _response(body={"access_token": "abc", "token_type": "Bearer", "expires_in": 600})

        authorized = TokenServiceClient(session=session).authorized_session()

        assert authorized.headers["Authorization"] == "Bearer abc"
