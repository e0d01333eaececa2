from typing import List

import pytest

from config import load_settings
from processor.models import Investor, Mandate, Property
from utils.events import RecordingEventEmitter
from tests.fakes import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def emitter() -> RecordingEventEmitter:
    return RecordingEventEmitter()


@pytest.fixture
def test_settings():
    return load_settings(
        OPENAI_API_KEY="test-key",
        LLM_LOG_CALLS=False,
        BATCH_SIZE_MAX=10,
        AI_CALLS_PER_MINUTE=30,
        LLM_TIMEOUT_SECONDS=1.0,
    )


@pytest.fixture
def downtown_investor() -> Investor:
    return Investor(
        id="inv-1",
        name="Gulf Capital",
        org_id="org-1",
        mandate=Mandate(
            preferred_areas=["Downtown"],
            min_investment=1_000_000,
            max_investment=5_000_000,
            strategy="Core Plus",
            yield_target="6-8%",
        ),
    )


@pytest.fixture
def scenario_properties() -> List[Property]:
    return [
        Property(id="A", area="Downtown", type="apartment", price=2_000_000),
        Property(id="B", area="Downtown", type="apartment", price=50_000_000),
        Property(id="C", area="Dubai Marina", type="apartment", price=2_000_000),
    ]
