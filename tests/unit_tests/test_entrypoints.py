import argparse
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from resender import main
from resender.models.ledger.dto import LedgerEntry, Outcome, RunResult
from resender.models.replay.dto import Action
from resender.services.replay.orchestrator import RunConfigurationError
from resender.services.search.scroll_search_client import SearchError

ARGS = ["--from", "2024-03-01T00:00:00Z", "--to", "2024-03-02T00:00:00Z", "--filter", "ScenarioName=ADT"]


@pytest.fixture()
def orchestrator(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    mock_orchestrator = MagicMock()
    mock_orchestrator.run.return_value = RunResult(total=0)
    monkeypatch.setattr(main.application, "application_init", MagicMock())
    monkeypatch.setattr(main.container, "get_run_orchestrator", MagicMock(return_value=mock_orchestrator))
    return mock_orchestrator


def test_main_should_run_query_by_default(orchestrator: MagicMock) -> None:
    assert main.main(ARGS) == main.EXIT_OK

    options = orchestrator.run.call_args.args[0]
    assert options.action == Action.QUERY
    assert options.start == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert options.filters == {"ScenarioName": "ADT"}
    assert options.batch_size == 2
    assert options.batch_delay == 0.0
    assert options.exact_match is None


def test_main_should_pass_replay_options(orchestrator: MagicMock) -> None:
    main.main(
        ARGS
        + [
            "--action", "Send",
            "--target", "acceptance",
            "--batch-size", "5",
            "--delay", "1.5",
            "--clean-envelope",
            "--new-ids",
            "--single-step",
            "--analyzed",
            "--filter-party", "PartyX",
        ]
    )

    options = orchestrator.run.call_args.args[0]
    assert options.action == Action.SEND
    assert options.target == "acceptance"
    assert options.batch_size == 5
    assert options.batch_delay == 1.5
    assert options.clean_envelope
    assert options.assign_new_ids
    assert options.single_step
    assert options.exact_match is False
    assert options.filter_party == "PartyX"


def test_main_should_report_ledger_errors(orchestrator: MagicMock) -> None:
    result = RunResult(total=1)
    result.append(LedgerEntry(timestamp=datetime.now(), outcome=Outcome.ERROR, record_id="a"))
    orchestrator.run.return_value = result

    assert main.main(ARGS + ["--action", "Test", "--target", "acc"]) == main.EXIT_LEDGER_ERRORS


@pytest.mark.parametrize("error", [RunConfigurationError("no target"), SearchError("index missing")])
def test_main_should_fail_on_fatal_errors(orchestrator: MagicMock, error: Exception) -> None:
    orchestrator.run.side_effect = error

    assert main.main(ARGS) == main.EXIT_FATAL


def test_main_should_reject_malformed_filters(orchestrator: MagicMock) -> None:
    with pytest.raises(SystemExit):
        main.main(["--from", "2024-03-01", "--to", "2024-03-02", "--filter", "ScenarioName"])

    orchestrator.run.assert_not_called()


def test_parse_filters_should_split_on_first_equals() -> None:
    assert main.parse_filters(["a=b=c", " x = y "]) == {"a": "b=c", "x": "y"}


def test_main_should_reject_duplicate_filter_fields(orchestrator: MagicMock) -> None:
    with pytest.raises(SystemExit):
        main.main(ARGS + ["--filter", "ScenarioName=Lab"])

    orchestrator.run.assert_not_called()


def test_parse_filters_should_reject_duplicate_fields() -> None:
    with pytest.raises(argparse.ArgumentTypeError, match="more than once"):
        main.parse_filters(["ScenarioName=A", " ScenarioName =B"])
