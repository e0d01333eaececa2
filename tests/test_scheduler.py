import pytest

from scheduler import ScoringScheduler
from services import ScoringServices
from tests.fakes import FakeLLMClient, FakeStore


@pytest.fixture
def services(clock, test_settings, emitter):
    return ScoringServices(store=FakeStore(), client=FakeLLMClient(), clock=clock, settings=test_settings, emitter=emitter)


def test_setup_registers_jobs(services):
    scheduler = ScoringScheduler(services)
    scheduler.setup()
    assert {job.id for job in scheduler.scheduler.get_jobs()} == {"cache_sweep", "budget_rollover"}


@pytest.mark.asyncio
async def test_run_once_sweeps_and_rolls_over(services, clock, emitter):
    services.cache.set("stale", 1, ttl_seconds=1)
    services.cache.set("fresh", 2, ttl_seconds=24 * 3600)
    services.ledger.record("scoring", 10, 10)
    clock.advance(13 * 3600)

    removed = await ScoringScheduler(services).run_once()

    assert removed == 1
    assert services.cache.get("fresh") == 2
    assert len(emitter.named("budget.daily_reset")) == 1
