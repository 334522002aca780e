from datetime import datetime
from typing import Any, Dict, List


class SearchQueryBuilder:
    """
    Builds the query body for one run: a time range on the timestamp field, one clause
    per operator filter and an ascending sort so records come back in processing order.

    Filters are either matched exactly against the ``<field>.keyword`` sub-field or as an
    analyzed phrase against the field itself. Both variants are in use depending on how the
    index was mapped, so the choice is left to configuration.
    """

    def __init__(self, timestamp_field: str, page_size: int, exact_match: bool = True) -> None:
        self.__timestamp_field = timestamp_field
        self.__page_size = page_size
        self.__exact_match = exact_match

    def build(
        self,
        start: datetime,
        end: datetime,
        filters: Dict[str, str],
        exact_match: bool | None = None,
    ) -> Dict[str, Any]:
        exact = self.__exact_match if exact_match is None else exact_match

        clauses: List[Dict[str, Any]] = [
            {
                "range": {
                    self.__timestamp_field: {
                        "gte": start.isoformat(),
                        "lte": end.isoformat(),
                    }
                }
            }
        ]
        for field, value in filters.items():
            clauses.append(self.filter_clause(field, value, exact))

        return {
            "size": self.__page_size,
            "query": {"bool": {"filter": clauses}},
            "sort": [{self.__timestamp_field: {"order": "asc"}}],
        }

    @staticmethod
    def filter_clause(field: str, value: str, exact: bool) -> Dict[str, Any]:
        if exact:
            name = field if field.endswith(".keyword") else f"{field}.keyword"
            return {"term": {name: value}}
        name = field[: -len(".keyword")] if field.endswith(".keyword") else field
        return {"match_phrase": {name: value}}
