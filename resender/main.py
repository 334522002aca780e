import argparse
import logging
import sys
from datetime import datetime
from typing import Dict, List, Sequence

from pydantic import ValidationError
from requests.exceptions import RequestException

from resender import application
from resender import container
from resender.config import get_config
from resender.models.replay.dto import Action, RunOptions
from resender.services.replay.orchestrator import RunConfigurationError
from resender.services.search.scroll_search_client import SearchError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LEDGER_ERRORS = 1
EXIT_FATAL = 2


def parse_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not an ISO-8601 date/time")


def parse_filters(values: List[str] | None) -> Dict[str, str]:
    filters: Dict[str, str] = {}
    for value in values or []:
        field, sep, match = value.partition("=")
        if not sep or not field.strip():
            raise argparse.ArgumentTypeError(f"Filter '{value}' must look like FIELD=VALUE")
        field = field.strip()
        if field in filters:
            raise argparse.ArgumentTypeError(f"Filter field '{field}' is given more than once")
        filters[field] = match.strip()
    return filters


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resender",
        description="Retrieve records from the search index and replay them to a target.",
    )
    parser.add_argument("--config", default=None, help="Path to the INI configuration file")
    parser.add_argument("--from", dest="start", type=parse_datetime, required=True, help="Start of the time range (ISO-8601)")
    parser.add_argument("--to", dest="end", type=parse_datetime, required=True, help="End of the time range (ISO-8601)")
    parser.add_argument("--filter", dest="filters", action="append", metavar="FIELD=VALUE", help="Record filter, repeatable")
    parser.add_argument("--action", choices=[a.value for a in Action], default=Action.QUERY.value)
    parser.add_argument("--target", default=None, help="Name of the replay target (Test/Send)")
    parser.add_argument("--batch-size", type=int, default=None)
    parser.add_argument("--delay", type=float, default=None, help="Seconds to wait between batches")
    parser.add_argument("--target-label", default=None, help="Instance label stamped in the provenance header")
    parser.add_argument("--filter-party", default=None)
    parser.add_argument("--filter-subscription-id", default=None)
    parser.add_argument("--clean-envelope", action="store_true", help="Only replay the Input payload section")
    parser.add_argument("--new-ids", dest="assign_new_ids", action="store_true", help="Let the target assign new message ids")
    parser.add_argument("--single-step", action="store_true", help="Start paused on every record")
    match_group = parser.add_mutually_exclusive_group()
    match_group.add_argument("--exact-match", dest="exact_match", action="store_true", default=None)
    match_group.add_argument("--analyzed", dest="exact_match", action="store_false")
    parser.add_argument("--log-file", default=None, help="Append every output line to this file")
    return parser


def build_run_options(args: argparse.Namespace) -> RunOptions:
    config = get_config()
    return RunOptions(
        start=args.start,
        end=args.end,
        filters=parse_filters(args.filters),
        action=Action(args.action),
        target=args.target,
        batch_size=args.batch_size if args.batch_size is not None else config.replay.batch_size,
        batch_delay=args.delay if args.delay is not None else float(config.replay.batch_delay_in_sec),  # type: ignore
        target_label=args.target_label or config.replay.target_label,
        filter_party=args.filter_party,
        filter_subscription_id=args.filter_subscription_id,
        clean_envelope=args.clean_envelope,
        assign_new_ids=args.assign_new_ids,
        single_step=args.single_step,
        exact_match=args.exact_match,
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    application.application_init(args.config, args.log_file)
    try:
        options = build_run_options(args)
    except (argparse.ArgumentTypeError, ValidationError) as e:
        parser.error(str(e))

    orchestrator = container.get_run_orchestrator()
    try:
        result = orchestrator.run(options)
    except RunConfigurationError as e:
        logger.error(f"Invalid run: {e}")
        return EXIT_FATAL
    except (SearchError, RequestException) as e:
        logger.error(f"Retrieval failed, nothing was replayed: {e}")
        return EXIT_FATAL

    return EXIT_LEDGER_ERRORS if result.errors else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
