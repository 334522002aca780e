import logging
from typing import Any, Callable, Dict, List

from requests import JSONDecodeError, Response
from requests.exceptions import RequestException
from yarl import URL

from resender.models.record.dto import FieldMapping, Record
from resender.models.search.dto import ScrollPage, SearchRequest
from resender.services.api.api_service import HttpService
from resender.services.api.authenticators.authenticator import Authenticator
from resender.stats import NoopStats, Stats

logger = logging.getLogger(__name__)

PageObserver = Callable[[int, int, int], None]

SCROLL_ROUTE = ("_search", "scroll")


class SearchError(Exception):
    pass


class ScrollSearchClient(HttpService):
    """
    Exhausts a scroll search. Either every page is fetched and the complete, ordered
    record list is returned, or a SearchError is raised and nothing is returned.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int,
        retries: int,
        backoff: float,
        authenticator: Authenticator | None = None,
        field_mapping: FieldMapping | None = None,
        stats: Stats | None = None,
    ) -> None:
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            retries=retries,
            backoff=backoff,
            authenticator=authenticator,
        )
        self.__field_mapping = field_mapping or FieldMapping()
        self.__stats = stats or NoopStats()

    def fetch_all(
        self, search_request: SearchRequest, page_observer: PageObserver | None = None
    ) -> List[Record]:
        with self.__stats.timer("search.fetch_all"):
            hits = self.__collect_hits(search_request, page_observer)

        self.__stats.inc("search.hits", len(hits))
        return [Record.from_hit(hit, self.__field_mapping) for hit in hits]

    def __collect_hits(
        self, search_request: SearchRequest, page_observer: PageObserver | None
    ) -> List[Dict[str, Any]]:
        page = self.__first_page(search_request)
        hits: List[Dict[str, Any]] = []
        page_number = 0

        while True:
            page_number += 1
            hits.extend(page.hits)
            self.__stats.inc("search.pages")
            self.__notify(page_observer, page_number, len(page.hits), len(hits))

            # An empty page means the cursor is exhausted, even if the backend still returns one.
            if not page.hits or not page.cursor:
                break
            page = self.__next_page(search_request, page.cursor)

        if page.cursor:
            self.__release_cursor(search_request, page.cursor)

        return hits

    def __first_page(self, search_request: SearchRequest) -> ScrollPage:
        url = URL(search_request.url).update_query(scroll=search_request.keep_alive)
        response = self.__post(search_request, url, search_request.query)
        return self.parse_page(response)

    def __next_page(self, search_request: SearchRequest, cursor: str) -> ScrollPage:
        url = self.scroll_url(search_request.url)
        body = {"scroll": search_request.keep_alive, "scroll_id": cursor}
        response = self.__post(search_request, url, body)
        return self.parse_page(response)

    def __post(self, search_request: SearchRequest, url: URL, body: Dict[str, Any]) -> Response:
        try:
            return self.do_request(
                "POST",
                url=url,
                json=body,
                headers=search_request.headers,
                timeout=search_request.timeout,
            )
        except (ConnectionError, RequestException, ValueError) as e:
            logger.error(f"Search request to {url} failed: {e}")
            raise SearchError(f"Search request failed: {e}") from e

    def __release_cursor(self, search_request: SearchRequest, cursor: str) -> None:
        try:
            self.do_request(
                "DELETE",
                url=self.scroll_url(search_request.url),
                json={"scroll_id": cursor},
                headers=search_request.headers,
                timeout=search_request.timeout,
            )
        except (ConnectionError, RequestException) as e:
            logger.warning(f"Could not release scroll cursor, it will expire on its own: {e}")

    @staticmethod
    def __notify(observer: PageObserver | None, page_number: int, count: int, total: int) -> None:
        if observer is None:
            return
        try:
            observer(page_number, count, total)
        except Exception:
            logger.exception("Page observer raised an exception")

    @staticmethod
    def scroll_url(search_url: str) -> URL:
        """
        The continuation endpoint lives at the root of the cluster, not below the index path.
        """
        url = URL(search_url).origin()
        for segment in SCROLL_ROUTE:
            url = url / segment
        return url

    @staticmethod
    def parse_page(response: Response) -> ScrollPage:
        try:
            data = response.json()
        except JSONDecodeError:
            logger.error("Failed to decode search response: %s", response.text)
            raise SearchError(
                f"Search backend returned an undecodable response (status {response.status_code})"
            )

        if not isinstance(data, dict):
            raise SearchError("Search backend returned an unexpected response")

        if "error" in data:
            reason = ScrollSearchClient.error_reason(data["error"])
            logger.error(f"Search backend returned an error: {reason}")
            raise SearchError(f"Search backend returned an error: {reason}")

        if response.status_code >= 300:
            raise SearchError(f"Search backend returned status {response.status_code}")

        hits_section = data.get("hits")
        if not isinstance(hits_section, dict) or not isinstance(hits_section.get("hits"), list):
            raise SearchError("Search response does not contain a hits array")

        return ScrollPage(cursor=data.get("_scroll_id") or None, hits=hits_section["hits"])

    @staticmethod
    def error_reason(error: Any) -> str:
        if isinstance(error, dict):
            root_causes = error.get("root_cause") or []
            if not error.get("reason") and root_causes and isinstance(root_causes[0], dict):
                return str(root_causes[0].get("reason", ""))
            reason = error.get("reason") or error.get("type") or str(error)
            return str(reason)
        return str(error)
