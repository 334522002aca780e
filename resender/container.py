import inject

from resender.config import get_config
from resender.models.record.dto import FieldMapping
from resender.services.api.authenticators.factory import AuthenticatorFactory
from resender.services.replay.control_source import ControlSource, create_control_source
from resender.services.replay.orchestrator import ReplaySettings, RunOrchestrator
from resender.services.replay.reporter import LedgerReporter
from resender.services.search.query_builder import SearchQueryBuilder
from resender.services.search.scroll_search_client import ScrollSearchClient
from resender.services.target_provider.json_provider import TargetJsonProvider
from resender.services.target_provider.target_provider import TargetProvider
from resender.services.transform.envelope_cleaner import EnvelopeCleaner
from resender.services.transform.record_transformer import RecordTransformer
from resender.stats import Stats, get_stats


def container_config(binder: inject.Binder) -> None:
    config = get_config()
    stats = get_stats()
    binder.bind(Stats, stats)

    auth_factory = AuthenticatorFactory(config=config)
    auth = auth_factory.create_authenticator()

    field_mapping = FieldMapping(
        message_id_field=config.record.message_id_field,
        scenario_field=config.record.scenario_field,
        process_field=config.record.process_field,
        timestamp_field=config.search.timestamp_field,
        payload_field=config.record.payload_field,
        provenance_field=config.record.provenance_field,
        business_key_field=config.record.business_key_field,
    )

    search_client = ScrollSearchClient(
        base_url=config.search.url,
        timeout=config.search.timeout,
        retries=config.search.retries,
        backoff=config.search.backoff,
        authenticator=auth,
        field_mapping=field_mapping,
        stats=stats,
    )
    binder.bind(ScrollSearchClient, search_client)

    query_builder = SearchQueryBuilder(
        timestamp_field=config.search.timestamp_field,
        page_size=config.search.page_size,
        exact_match=config.search.exact_match,
    )
    binder.bind(SearchQueryBuilder, query_builder)

    envelope_cleaner = EnvelopeCleaner()
    binder.bind(EnvelopeCleaner, envelope_cleaner)

    transformer = RecordTransformer(envelope_cleaner=envelope_cleaner)
    binder.bind(RecordTransformer, transformer)

    target_provider = TargetJsonProvider(config.replay.targets_file)
    binder.bind(TargetProvider, target_provider)

    control_source = create_control_source()
    binder.bind(ControlSource, control_source)

    settings = ReplaySettings(
        search_url=config.search.url,
        keep_alive=config.search.keep_alive,
        search_timeout=config.search.timeout,
        replay_timeout=config.replay.timeout,
        replay_retries=config.replay.retries,
        replay_backoff=config.replay.backoff,
        source_host=config.replay.source_host,
        fallback_state=config.replay.fallback_state,
        poll_interval=config.replay.poll_interval,
    )

    orchestrator = RunOrchestrator(
        search_client=search_client,
        query_builder=query_builder,
        transformer=transformer,
        target_provider=target_provider,
        settings=settings,
        control_source=control_source,
        reporter=LedgerReporter(),
        stats=stats,
    )
    binder.bind(RunOrchestrator, orchestrator)


def get_run_orchestrator() -> RunOrchestrator:
    return inject.instance(RunOrchestrator)


def get_target_provider() -> TargetProvider:
    return inject.instance(TargetProvider)  # type: ignore


def setup_container() -> None:
    inject.configure(container_config, once=True)
