import base64
from typing import Any, Dict, List
from unittest.mock import MagicMock
from urllib.parse import unquote

from resender.models.record.dto import Record


def make_hit(
    record_id: str,
    timestamp: str = "2024-03-01T10:00:00+00:00",
    scenario: str = "ADT",
    process: str = "A08",
    business_keys: Dict[str, Any] | None = None,
    payload: str = "<Message/>",
    **extra: Any,
) -> Dict[str, Any]:
    source: Dict[str, Any] = {
        "MSGID": f"msg-{record_id}",
        "ScenarioName": scenario,
        "ProcessName": process,
        "@timestamp": timestamp,
        "Payload": payload,
        "BK": business_keys if business_keys is not None else {"PatientId": record_id},
    }
    source.update(extra)
    return {"_index": "logs-2024.03", "_id": record_id, "_source": source}


def make_records(count: int) -> List[Record]:
    return [
        Record.from_hit(make_hit(f"rec-{i}", timestamp=f"2024-03-01T10:{i:02d}:00+00:00"))
        for i in range(1, count + 1)
    ]


def make_response(status_code: int = 200, body: Any = None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = text
    response.reason = "OK" if status_code < 300 else "Error"
    return response


def search_page(cursor: str | None, ids: List[str]) -> Dict[str, Any]:
    page: Dict[str, Any] = {"hits": {"total": {"value": len(ids)}, "hits": [make_hit(i) for i in ids]}}
    if cursor is not None:
        page["_scroll_id"] = cursor
    return page


def decode(header: bytes) -> str:
    return base64.b64decode(unquote(header.decode("ascii"))).decode("utf-8")


def post_calls(mock_request: MagicMock) -> List[Any]:
    return [c for c in mock_request.call_args_list if c.kwargs["method"] == "POST"]


def responses_for(pages: List[Dict[str, Any]]) -> List[MagicMock]:
    return [make_response(200, page) for page in pages]


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
