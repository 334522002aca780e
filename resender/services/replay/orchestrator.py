import logging
from typing import Callable, List

from resender.models.ledger.dto import RunResult
from resender.models.record.dto import Record
from resender.models.replay.dto import Action, ReplayMode, RunOptions
from resender.models.search.dto import SearchRequest
from resender.services.api.replay_target_api import ReplayTargetApi
from resender.services.replay.control_source import ControlSource, NullControlSource
from resender.services.replay.controller import ReplayController
from resender.services.replay.dispatcher import Dispatcher
from resender.services.replay.reporter import LedgerReporter, summarize_groups
from resender.services.search.query_builder import SearchQueryBuilder
from resender.services.search.scroll_search_client import ScrollSearchClient
from resender.services.target_provider.target_provider import (
    TargetNotFoundError,
    TargetProvider,
)
from resender.services.transform.record_transformer import RecordTransformer
from resender.stats import NoopStats, Stats

logger = logging.getLogger(__name__)

TargetApiFactory = Callable[[str, RunOptions], ReplayTargetApi]


class RunConfigurationError(Exception):
    pass


class ReplaySettings:
    """Run independent replay settings, taken from the [replay] configuration section."""

    def __init__(
        self,
        search_url: str,
        keep_alive: str = "1m",
        search_timeout: int = 30,
        search_headers: dict[str, str] | None = None,
        replay_timeout: int = 30,
        replay_retries: int = 1,
        replay_backoff: float = 0.5,
        source_host: str = "resender",
        fallback_state: str = "Resent",
        poll_interval: float = 0.2,
    ) -> None:
        self.search_url = search_url
        self.keep_alive = keep_alive
        self.search_timeout = search_timeout
        self.search_headers = search_headers or {}
        self.replay_timeout = replay_timeout
        self.replay_retries = replay_retries
        self.replay_backoff = replay_backoff
        self.source_host = source_host
        self.fallback_state = fallback_state
        self.poll_interval = poll_interval


class RunOrchestrator:
    def __init__(
        self,
        search_client: ScrollSearchClient,
        query_builder: SearchQueryBuilder,
        transformer: RecordTransformer,
        target_provider: TargetProvider,
        settings: ReplaySettings,
        control_source: ControlSource | None = None,
        reporter: LedgerReporter | None = None,
        stats: Stats | None = None,
        target_api_factory: TargetApiFactory | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.__search_client = search_client
        self.__query_builder = query_builder
        self.__transformer = transformer
        self.__target_provider = target_provider
        self.__settings = settings
        self.__control_source = control_source or NullControlSource()
        self.__reporter = reporter or LedgerReporter()
        self.__stats = stats or NoopStats()
        self.__target_api_factory = target_api_factory or self.__create_target_api
        self.__sleep = sleep

    def run(self, options: RunOptions) -> RunResult:
        target_url = self.validate(options)

        records = self.fetch(options)
        result = RunResult(total=len(records))

        if options.action == Action.QUERY:
            result.groups = summarize_groups(records)
            self.__reporter.report_groups(result.groups)
            return result

        if target_url is None:
            raise RunConfigurationError(f"A target is required for action {options.action.value}")
        dispatcher = Dispatcher(
            transformer=self.__transformer,
            options=options,
            fallback_state=self.__settings.fallback_state,
            target_api=self.__target_api_factory(target_url, options) if options.action == Action.SEND else None,
            stats=self.__stats,
        )
        logger.info(f"{options.action.value} {len(records)} record(s) against {options.target} ({target_url})")

        with self.__control_source as source:
            controller = self.__create_controller(source, options, len(records))
            self.replay(records, controller, dispatcher, result)

        self.__reporter.report_ledgers(result)
        return result

    def validate(self, options: RunOptions) -> str | None:
        """
        Checks everything that can be checked before any network traffic. Returns the
        resolved target URL for Test and Send runs.
        """
        if not options.filters:
            raise RunConfigurationError("At least one filter is required")
        if options.start >= options.end:
            raise RunConfigurationError(
                f"Invalid time range: start {options.start.isoformat()} is not before end {options.end.isoformat()}"
            )
        if options.batch_size < 1:
            raise RunConfigurationError("Batch size must be at least 1")
        if options.batch_delay < 0:
            raise RunConfigurationError("Batch delay cannot be negative")

        if options.action == Action.QUERY:
            return None
        if not options.target:
            raise RunConfigurationError(f"A target is required for action {options.action.value}")
        try:
            return self.__target_provider.resolve(options.target)
        except (TargetNotFoundError, FileNotFoundError, ValueError) as e:
            raise RunConfigurationError(str(e)) from e

    def fetch(self, options: RunOptions) -> List[Record]:
        search_request = SearchRequest(
            url=self.__settings.search_url,
            query=self.__query_builder.build(
                options.start, options.end, options.filters, options.exact_match
            ),
            headers=self.__settings.search_headers,
            timeout=self.__settings.search_timeout,
            keep_alive=self.__settings.keep_alive,
        )
        records = self.__search_client.fetch_all(search_request, self.__reporter.page_fetched)
        logger.info(f"Retrieved {len(records)} record(s)")
        return records

    def replay(
        self,
        records: List[Record],
        controller: ReplayController,
        dispatcher: Dispatcher,
        result: RunResult,
    ) -> None:
        total = len(records)
        batch_size = controller.state.batch_size

        for index, record in enumerate(records, start=1):
            try:
                controller.poll()
                if controller.wait_while_paused() == ReplayMode.STOPPED:
                    break

                controller.advance(index)
                dispatcher.dispatch(record, result)
                controller.record_completed()

                if index % batch_size == 0 and index < total:
                    self.__reporter.batch_completed(index, total, controller.state.batch_delay)
                    controller.wait_delay(controller.state.batch_delay)
            except KeyboardInterrupt:
                logger.warning("Interrupted, stopping replay")
                controller.stop()

            if controller.stopped:
                break

        result.stopped = controller.stopped

    def __create_controller(self, source: ControlSource, options: RunOptions, total: int) -> ReplayController:
        kwargs = {}
        if self.__sleep is not None:
            kwargs["sleep"] = self.__sleep
        return ReplayController(
            source=source,
            total=total,
            batch_size=options.batch_size,
            batch_delay=options.batch_delay,
            single_step=options.single_step,
            poll_interval=self.__settings.poll_interval,
            **kwargs,
        )

    def __create_target_api(self, target_url: str, options: RunOptions) -> ReplayTargetApi:
        return ReplayTargetApi(
            base_url=target_url,
            timeout=self.__settings.replay_timeout,
            retries=self.__settings.replay_retries,
            backoff=self.__settings.replay_backoff,
            source_host=self.__settings.source_host,
            assign_new_ids=options.assign_new_ids,
        )
