"""
============================================================================
FILE: test_identity.py
LOCATION: tests/test_identity.py
============================================================================

PURPOSE:
    Tests for the identity-provider wrapper.

KEY COMPONENTS:
    - TestCheckPassword: Identity Toolkit REST sign-in mapping
    - TestCreateIdentity: Error mapping

DEPENDENCIES:
    - External: pytest, requests
    - Internal: api.identity

USAGE:
    Run with: pytest tests/test_identity.py -v
============================================================================
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from api import identity
from api.errors import BadRequestError, ConfigurationError, ConflictError


def _response(status_code: int) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.raise_for_status.side_effect = requests.HTTPError(f"{status_code}")
    return response


class TestCheckPassword:
    @pytest.fixture(autouse=True)
    def real_provider(self):
        with patch.object(identity, "USE_MOCK_DB", False), patch.object(
            identity, "FIREBASE_WEB_API_KEY", "web-key"
        ):
            yield

    def test_accepted_credentials(self) -> None:
        with patch.object(identity.requests, "post", return_value=_response(200)) as post:
            assert identity.check_password("a@b.co", "rahasia123") is True

        assert post.call_args.kwargs["params"] == {"key": "web-key"}
        assert post.call_args.kwargs["json"]["email"] == "a@b.co"

    def test_rejected_credentials(self) -> None:
        with patch.object(identity.requests, "post", return_value=_response(400)):
            assert identity.check_password("a@b.co", "salah") is False

    def test_provider_failure_propagates(self) -> None:
        with patch.object(identity.requests, "post", return_value=_response(503)):
            with pytest.raises(requests.HTTPError):
                identity.check_password("a@b.co", "rahasia123")

    def test_missing_web_key(self) -> None:
        with patch.object(identity, "FIREBASE_WEB_API_KEY", ""):
            with pytest.raises(ConfigurationError):
                identity.check_password("a@b.co", "rahasia123")


class TestCreateIdentity:
    def test_duplicate_maps_to_conflict(self) -> None:
        identity.create_identity("a@b.co", "rahasia123", "A")

        with pytest.raises(ConflictError):
            identity.create_identity("a@b.co", "rahasia123", "A")

    def test_provider_value_error_maps_to_bad_request(self) -> None:
        with pytest.raises(BadRequestError):
            identity.create_identity("", "rahasia123", "A")

    def test_delete_missing_identity_is_quiet(self) -> None:
        identity.delete_identity("no-such-uid")

        assert identity.find_user_by_email("a@b.co") is None

