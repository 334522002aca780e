import math
from unittest.mock import MagicMock, patch

import pytest
from requests import JSONDecodeError
from requests.exceptions import Timeout
from yarl import URL

from resender.models.search.dto import SearchRequest
from resender.services.search.scroll_search_client import ScrollSearchClient, SearchError
from resender.stats import Statsd
from tests.utils import make_response, post_calls, responses_for, search_page

PATCHED_MODULE = "resender.services.api.api_service.request"


@patch(PATCHED_MODULE)
def test_fetch_all_should_exhaust_cursor(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    ids = [f"r{i}" for i in range(5)]
    page_size = 2
    pages = [
        search_page("cursor-1", ids[0:2]),
        search_page("cursor-2", ids[2:4]),
        search_page("cursor-3", ids[4:5]),
        search_page("cursor-4", []),
    ]
    mock_request.side_effect = responses_for(pages) + [make_response(200, {"succeeded": True})]

    records = search_client.fetch_all(search_request)

    assert [r.id for r in records] == ids
    posts = post_calls(mock_request)
    non_empty_pages = math.ceil(len(ids) / page_size)
    assert len(posts) == non_empty_pages + 1


@patch(PATCHED_MODULE)
def test_fetch_all_should_use_cursor_for_continuation(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    mock_request.side_effect = responses_for(
        [search_page("cursor-1", ["a"]), search_page("cursor-2", [])]
    ) + [make_response(200, {})]

    search_client.fetch_all(search_request)

    first, second = post_calls(mock_request)
    assert first.kwargs["url"] == str(URL(search_request.url).update_query(scroll="2m"))
    assert first.kwargs["json"] == search_request.query
    assert first.kwargs["timeout"] == 5
    assert first.kwargs["headers"]["X-Opaque-Id"] == "test"
    assert second.kwargs["url"] == "http://search.example.com:9200/_search/scroll"
    assert second.kwargs["json"] == {"scroll": "2m", "scroll_id": "cursor-1"}


@patch(PATCHED_MODULE)
def test_fetch_all_should_stop_on_empty_page_with_cursor(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    mock_request.side_effect = responses_for(
        [search_page("cursor-1", ["a", "b"]), search_page("cursor-1", [])]
    ) + [make_response(200, {})]

    records = search_client.fetch_all(search_request)

    assert len(records) == 2
    assert len(post_calls(mock_request)) == 2
    release = mock_request.call_args_list[-1]
    assert release.kwargs["method"] == "DELETE"
    assert release.kwargs["json"] == {"scroll_id": "cursor-1"}


@patch(PATCHED_MODULE)
def test_fetch_all_should_stop_without_cursor(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    mock_request.side_effect = responses_for([search_page(None, ["a", "b"])])

    records = search_client.fetch_all(search_request)

    assert len(records) == 2
    assert mock_request.call_count == 1


@patch(PATCHED_MODULE)
def test_fetch_all_should_report_pages_to_observer(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    mock_request.side_effect = responses_for(
        [
            search_page("c", ["a", "b"]),
            search_page("c", ["c"]),
            search_page("c", []),
        ]
    ) + [make_response(200, {})]
    observer = MagicMock()

    search_client.fetch_all(search_request, observer)

    assert [c.args for c in observer.call_args_list] == [(1, 2, 2), (2, 1, 3), (3, 0, 3)]


@patch(PATCHED_MODULE)
def test_fetch_all_should_ignore_failing_observer(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    mock_request.side_effect = responses_for([search_page(None, ["a"])])

    records = search_client.fetch_all(search_request, MagicMock(side_effect=RuntimeError("boom")))

    assert len(records) == 1


@patch(PATCHED_MODULE)
def test_fetch_all_should_fail_on_error_payload(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    mock_request.return_value = make_response(
        400,
        {
            "error": {
                "root_cause": [{"type": "parsing_exception", "reason": "unknown query [foo]"}],
                "type": "parsing_exception",
                "reason": "unknown query [foo]",
            },
            "status": 400,
        },
    )

    with pytest.raises(SearchError, match=r"unknown query \[foo\]"):
        search_client.fetch_all(search_request)

    assert mock_request.call_count == 1


@patch(PATCHED_MODULE)
def test_fetch_all_should_discard_pages_when_later_page_fails(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    mock_request.side_effect = responses_for(
        [search_page("c1", ["a", "b"]), search_page("c2", ["c", "d"])]
    ) + [Timeout("read timed out")]

    with pytest.raises(SearchError):
        search_client.fetch_all(search_request)


@patch(PATCHED_MODULE)
def test_fetch_all_should_fail_on_non_success_status(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    mock_request.side_effect = [
        make_response(200, search_page("c1", ["a"])),
        make_response(503, {"message": "unavailable"}),
    ]

    with pytest.raises(SearchError, match="503"):
        search_client.fetch_all(search_request)


@patch(PATCHED_MODULE)
def test_fetch_all_should_fail_on_malformed_initial_response(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    response = make_response(200, None, text="<html>proxy error</html>")
    response.json.side_effect = JSONDecodeError("Expecting value", "<html>", 0)
    mock_request.return_value = response

    with pytest.raises(SearchError, match="undecodable"):
        search_client.fetch_all(search_request)


@patch(PATCHED_MODULE)
def test_fetch_all_should_fail_when_hits_are_missing(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    mock_request.return_value = make_response(200, {"_scroll_id": "c1"})

    with pytest.raises(SearchError, match="hits"):
        search_client.fetch_all(search_request)


@patch(PATCHED_MODULE)
def test_fetch_all_should_not_fail_when_cursor_release_fails(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
) -> None:
    mock_request.side_effect = responses_for(
        [search_page("c1", ["a"]), search_page("c1", [])]
    ) + [Timeout("slow")]

    records = search_client.fetch_all(search_request)

    assert len(records) == 1


@patch(PATCHED_MODULE)
def test_fetch_all_should_record_stats(
    mock_request: MagicMock,
    search_client: ScrollSearchClient,
    search_request: SearchRequest,
    memory_stats: Statsd,
) -> None:
    mock_request.side_effect = responses_for([search_page(None, ["a", "b", "c"])])

    search_client.fetch_all(search_request)

    memory = memory_stats.client.get_memory()
    assert memory["search.pages"] == 1
    assert memory["search.hits"] == 3
    assert len(memory["search.fetch_all"]) == 1


def test_error_reason_should_accept_plain_strings() -> None:
    assert ScrollSearchClient.error_reason("index_not_found") == "index_not_found"


def test_error_reason_should_fall_back_to_root_cause() -> None:
    error = {"root_cause": [{"reason": "no such index [x]"}]}

    assert ScrollSearchClient.error_reason(error) == "no such index [x]"


def test_scroll_url_should_be_derived_from_origin() -> None:
    url = ScrollSearchClient.scroll_url("https://es.example.org:9243/a,b/_search?x=1")

    assert str(url) == "https://es.example.org:9243/_search/scroll"
