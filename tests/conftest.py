from collections.abc import Generator
from typing import Any, List

import inject
import pytest

from resender.config import reset_config, set_config
from resender.models.record.dto import Record
from resender.services.transform.envelope_cleaner import EnvelopeCleaner
from resender.services.transform.record_transformer import RecordTransformer
from resender.stats import reset_stats
from tests.test_config import get_test_config
from tests.utils import make_records


@pytest.fixture(autouse=True)
def test_config() -> Generator[None, Any, None]:
    set_config(get_test_config())
    yield
    reset_config()
    reset_stats()
    inject.clear()


@pytest.fixture()
def envelope_cleaner() -> EnvelopeCleaner:
    return EnvelopeCleaner()


@pytest.fixture()
def record_transformer(envelope_cleaner: EnvelopeCleaner) -> RecordTransformer:
    return RecordTransformer(envelope_cleaner=envelope_cleaner)


@pytest.fixture()
def records() -> List[Record]:
    return make_records(5)
