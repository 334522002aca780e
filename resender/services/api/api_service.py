from abc import ABC
import logging
import time
from typing import Dict, Any
from requests import request, Response
from requests.exceptions import Timeout, ConnectionError
from yarl import URL

from resender.services.api.authenticators.authenticator import Authenticator

logger = logging.getLogger(__name__)


class HttpService(ABC):
    """
    Base class for making HTTP requests with retry logic
    """

    def __init__(
        self,
        base_url: str,
        timeout: int,
        retries: int,
        backoff: float,
        authenticator: Authenticator | None = None,
        content_type: str = "application/json",
    ) -> None:
        self.base_url = base_url
        self.authenticator = authenticator
        self.content_type = content_type
        self.__timeout = timeout
        self.__retries = retries
        self.__backoff = backoff

    def do_request(
        self,
        method: str,
        sub_route: str | None = None,
        json: Dict[str, Any] | None = None,
        params: Dict[str, Any] | None = None,
        data: str | bytes | None = None,
        headers: Dict[str, Any] | None = None,
        url: URL | None = None,
        timeout: int | None = None,
    ) -> Response:
        """
        Perform an HTTP request. When `url` is given it is used as-is instead of base_url + sub_route.
        """
        request_headers = self.make_headers()
        if headers:
            request_headers.update(headers)
        target = url if url is not None else self.make_target_url(sub_route, params)
        if url is not None and params:
            target = target.update_query(params)

        for attempt in range(self.__retries):
            try:
                logger.debug(f"Making HTTP {method} request to {target}")
                response = request(
                    method=method,
                    url=str(target),
                    headers=request_headers,
                    timeout=timeout if timeout is not None else self.__timeout,
                    json=json,
                    data=data,
                    auth=self.authenticator.get_auth() if self.authenticator else None,
                )
                return response
            except (
                ConnectionError,
                Timeout,
            ):
                logger.warning(f"Failed to make request to {target} on attempt {attempt}")

                # Connection error or timeout, we can retry with an exponential backoff until
                # we reach the max retries
                if attempt < self.__retries - 1:
                    logger.info(f"Retrying in {self.__backoff * (2**attempt)} seconds")
                    time.sleep(self.__backoff * (2**attempt))

        logger.error(f"Failed to make request to {target} after {self.__retries} attempts")
        raise ConnectionError("Failed to make request after too many retries")

    def make_headers(self) -> Dict[str, Any]:
        headers = {"Content-Type": self.content_type}
        if self.authenticator:
            header = self.authenticator.get_authentication_header()
            if header:
                headers["Authorization"] = header

        return headers

    def make_target_url(
        self, sub_route: str | None = None, params: Dict[str, Any] | None = None
    ) -> URL:
        url = self.base_url
        if sub_route:
            url = f"{url}/{sub_route}"

        target = URL(url)
        if params:
            return target.with_query(params)

        return target
