from abc import ABC, abstractmethod
from typing import Any


class Authenticator(ABC):
    """
    Abstract base class for authentication providers.

    Every request towards the search backend and the replay targets goes
    through an authenticator. Concrete implementations return either a header
    value, a library specific auth object, or both.
    """

    @abstractmethod
    def get_authentication_header(self) -> str:
        """
        Returns an authentication header value as a string.

        An empty string means no ``Authorization`` header is sent.

        Returns:
            str: The formatted header string, e.g., ``"Bearer <token>"``.
        """
        ...

    @abstractmethod
    def get_auth(self) -> Any:
        """
        Return authentication data in a library-specific format, suitable for
        the ``auth`` parameter of ``requests``.

        Returns:
            Any: Authentication object or ``None``.
        """
        ...
