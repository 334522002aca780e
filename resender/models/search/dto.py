from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class SearchRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    query: Dict[str, Any]
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout: int = 30
    keep_alive: str = "1m"


class ScrollPage(BaseModel):
    cursor: str | None = None
    hits: List[Dict[str, Any]] = Field(default_factory=list)
