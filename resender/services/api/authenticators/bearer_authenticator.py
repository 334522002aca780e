from typing import Any
from resender.services.api.authenticators.authenticator import Authenticator


class BearerAuthenticator(Authenticator):
    """
    Sends a static, operator supplied token as a bearer Authorization header.
    """
    def __init__(self, token: str) -> None:
        self.__token = token

    def get_authentication_header(self) -> str:
        return f"Bearer {self.__token}"

    def get_auth(self) -> Any:
        return None
