import logging
from typing import Dict, Iterable, List, Tuple

from resender.models.ledger.dto import RunResult
from resender.models.record.dto import Record
from resender.models.replay.dto import GroupSummary

logger = logging.getLogger(__name__)


def summarize_groups(records: Iterable[Record]) -> List[GroupSummary]:
    """
    Count records per (scenario, process) and keep the first and last timestamp of each group.
    Groups are returned in order of first appearance.
    """
    groups: Dict[Tuple[str, str], GroupSummary] = {}
    for record in records:
        key = (record.scenario_name, record.process_name)
        group = groups.get(key)
        if group is None:
            group = GroupSummary(scenario_name=key[0], process_name=key[1])
            groups[key] = group

        group.count += 1
        timestamp = record.timestamp
        if timestamp is not None:
            if group.first is None or timestamp < group.first:
                group.first = timestamp
            if group.last is None or timestamp > group.last:
                group.last = timestamp
    return list(groups.values())


class LedgerReporter:
    """
    Writes run output through the logging system so the console and the optional log file
    receive identical lines.
    """

    def __init__(self, report_logger: logging.Logger | None = None) -> None:
        self.__logger = report_logger or logger

    def page_fetched(self, page_number: int, page_count: int, total: int) -> None:
        self.__logger.info(f"Page {page_number}: {page_count} record(s), {total} in total")

    def batch_completed(self, processed: int, total: int, delay: float) -> None:
        self.__logger.info(
            f"Batch done, {processed}/{total} record(s) processed. Waiting {delay:g}s (R skips the wait)"
        )

    def report_groups(self, groups: List[GroupSummary]) -> None:
        self.__logger.info(f"{len(groups)} group(s) found")
        for group in groups:
            first = group.first.isoformat() if group.first else "-"
            last = group.last.isoformat() if group.last else "-"
            self.__logger.info(
                f"  {group.scenario_name or '-'} / {group.process_name or '-'}: {group.count} record(s), {first} .. {last}"
            )

    def report_ledgers(self, result: RunResult) -> None:
        self.__logger.info(f"Successes ({len(result.successes)}):")
        for entry in result.successes:
            self.__logger.info(f"  {entry.format()}")

        self.__logger.info(f"Errors ({len(result.errors)}):")
        for entry in result.errors:
            self.__logger.info(f"  {entry.format()}")

        skipped = result.total - result.processed
        summary = (
            f"Total {result.total}, processed {result.processed}, "
            f"succeeded {len(result.successes)}, failed {len(result.errors)}, skipped {skipped}"
        )
        if result.stopped:
            summary += " (stopped by operator)"
        self.__logger.info(summary)
