import pytest
from pydantic import SecretStr

from chatbridge.core.auth import extract_bearer_token, issue_user_token, verify_user_token
from chatbridge.core.exceptions import AuthenticationError, ConfigurationError


def test_issued_token_round_trips_to_user_id(settings):
    token = issue_user_token("user-42", settings)

    assert verify_user_token(token, settings) == "user-42"


def test_token_signed_with_other_secret_is_rejected(settings):
    other = settings.model_copy(update={"jwt_secret": SecretStr("another-secret-0123456789abcdef-xyz")})
    token = issue_user_token("user-42", other)

    with pytest.raises(AuthenticationError):
        verify_user_token(token, settings)


def test_expired_token_is_rejected(settings):
    expired = settings.model_copy(update={"jwt_ttl_seconds": -10})
    token = issue_user_token("user-42", expired)

    with pytest.raises(AuthenticationError):
        verify_user_token(token, settings)


def test_missing_secret_is_a_configuration_error(settings):
    unsigned = settings.model_copy(update={"jwt_secret": None})

    with pytest.raises(ConfigurationError):
        issue_user_token("user-42", unsigned)


@pytest.mark.parametrize(
    ("header", "expected"),
    [("Bearer abc", "abc"), ("CustomBearer xyz", "xyz"), ("  Bearer   padded ", "padded")],
)
def test_extract_bearer_token_accepts_both_schemes(header, expected):
    assert extract_bearer_token(header) == expected


@pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer", "Bearer   "])
def test_extract_bearer_token_rejects_bad_headers(header):
    with pytest.raises(AuthenticationError):
        extract_bearer_token(header)
