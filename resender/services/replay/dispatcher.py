import logging
from datetime import datetime

from resender.models.ledger.dto import LedgerEntry, Outcome, RunResult
from resender.models.record.dto import Record
from resender.models.replay.dto import Action, RunOptions
from resender.services.api.replay_target_api import ReplayTargetApi
from resender.services.transform.record_transformer import RecordTransformer
from resender.stats import NoopStats, Stats

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Replays one record at a time and ledgers the outcome. Every call to `dispatch` appends
    exactly one entry, failures included.
    """

    def __init__(
        self,
        transformer: RecordTransformer,
        options: RunOptions,
        fallback_state: str,
        target_api: ReplayTargetApi | None = None,
        stats: Stats | None = None,
    ) -> None:
        if options.action == Action.SEND and target_api is None:
            raise ValueError("A target api is required to send records")
        self.__transformer = transformer
        self.__options = options
        self.__fallback_state = fallback_state
        self.__target_api = target_api
        self.__stats = stats or NoopStats()

    def dispatch(self, record: Record, run_result: RunResult) -> LedgerEntry:
        """
        An interrupt during the outbound call is ledgered as an error and then re-raised, the
        record may or may not have reached the target.
        """
        try:
            ok, detail = self.__execute(record)
        except KeyboardInterrupt:
            logger.warning(f"Interrupted while replaying record {record.id}")
            self.__append(record, run_result, Outcome.ERROR, "Interrupted, delivery unknown")
            raise

        if not ok:
            outcome = Outcome.ERROR
        elif self.__options.action == Action.TEST:
            outcome = Outcome.TEST_OK
        else:
            outcome = Outcome.OK
        return self.__append(record, run_result, outcome, detail)

    def __append(self, record: Record, run_result: RunResult, outcome: Outcome, detail: str) -> LedgerEntry:
        entry = LedgerEntry(
            timestamp=datetime.now(),
            outcome=outcome,
            record_id=record.id,
            detail=detail,
        )
        run_result.append(entry)
        self.__stats.inc(f"replay.dispatch.{outcome.value.lower()}")
        return entry

    def __execute(self, record: Record) -> tuple[bool, str]:
        try:
            replay_record = self.__transformer.to_replay_record(
                record,
                target_label=self.__options.target_label,
                override_party=self.__options.filter_party,
                override_subscription_id=self.__options.filter_subscription_id,
                fallback_state=self.__fallback_state,
                clean_envelope=self.__options.clean_envelope,
            )
        except ValueError as e:
            logger.warning(f"Could not build replay request for record {record.id}: {e}")
            return False, f"Could not build replay request: {e}"

        if self.__options.action == Action.TEST:
            return True, f"message id {replay_record.message_id or '-'}, {len(replay_record.payload)} bytes"

        if self.__target_api is None:
            raise ValueError("A target api is required to send records")
        with self.__stats.timer("replay.dispatch.send"):
            return self.__target_api.post_record(replay_record)
