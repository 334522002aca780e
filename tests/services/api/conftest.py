from typing import Any, Dict
import pytest

from resender.config import get_config
from resender.services.api.api_service import HttpService
from resender.services.api.authenticators.authenticator import Authenticator
from resender.services.api.authenticators.aws_v4_authenticator import AwsV4Authenticator
from resender.services.api.authenticators.azure_oauth2_authenticator import (
    AzureOAuth2Authenticator,
)

MOCK_AUTH_TOKEN = "some-token"
MOCK_AUTH = "some-auth"


class MockAuthenticator(Authenticator):
    """
    Dummy class for testing purposes only
    """

    def get_authentication_header(self) -> str:
        return MOCK_AUTH_TOKEN

    def get_auth(self) -> Any:
        return MOCK_AUTH


@pytest.fixture()
def base_url() -> str:
    return "http://example.com"


@pytest.fixture()
def mock_sub_route() -> str:
    return "some-route"


@pytest.fixture()
def mock_params() -> Dict[str, Any]:
    return {"param": "example"}


@pytest.fixture()
def mock_body() -> Dict[str, Any]:
    return {"example": "some data"}


@pytest.fixture()
def http_service(base_url: str) -> HttpService:
    config = get_config()
    return HttpService(
        base_url=base_url,
        timeout=config.search.timeout,
        backoff=config.search.backoff,
        retries=1,
    )


@pytest.fixture()
def mock_authenticator() -> MockAuthenticator:
    return MockAuthenticator()


@pytest.fixture()
def mock_auth() -> str:
    return MOCK_AUTH


@pytest.fixture()
def mock_authentication_headers() -> Dict[str, Any]:
    return {"Content-Type": "application/json", "Authorization": MOCK_AUTH_TOKEN}


@pytest.fixture()
def aws_v4_authenticator() -> AwsV4Authenticator:
    return AwsV4Authenticator(profile="example", region="example")


@pytest.fixture()
def azure_oauth_authenticator() -> AzureOAuth2Authenticator:
    return AzureOAuth2Authenticator(
        token_url="http://token.example.com",
        client_id="example",
        client_secret="example",
        resource="example",
    )
