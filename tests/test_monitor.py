from datetime import datetime, timedelta

import pytest

from app import ZenWealthApp
from conftest import FakeGateway, stock_draft
from exceptions import GatewayUnavailable
from models import AssetType, Currency
from monitor import JOB_ID, refresh_job, start_monitor_scheduler
from services import RefreshOutcome, RefreshState


@pytest.fixture
def zen(settings, repository):
    gateway = FakeGateway(prices={"NVDA": 130}, prices_error=None)
    return ZenWealthApp.bootstrap(settings=settings, repository=repository, gateway=gateway)


@pytest.mark.asyncio
async def test_refresh_job_runs_a_cycle(zen):
    asset = zen.add_asset(stock_draft("NVDA", 4, 120, Currency.USD, AssetType.US_STOCK))

    report = await refresh_job(zen)

    assert report.outcome == RefreshOutcome.COMPLETED
    assert zen.store.get(asset.id).price == 130


@pytest.mark.asyncio
async def test_refresh_job_skips_when_cycle_in_flight(zen):
    zen.coordinator.state = RefreshState.REFRESHING

    report = await refresh_job(zen)

    assert report.outcome == RefreshOutcome.SKIPPED


@pytest.mark.asyncio
async def test_refresh_job_tolerates_gateway_outage(settings, repository):
    gateway = FakeGateway(rates_error=GatewayUnavailable("offline"))
    zen = ZenWealthApp.bootstrap(settings=settings, repository=repository, gateway=gateway)

    report = await refresh_job(zen)

    assert report.degraded
    assert zen.rates.usd_to_twd == 32.5


@pytest.mark.asyncio
async def test_scheduler_registers_interval_job(zen):
    scheduler = start_monitor_scheduler(zen, interval_minutes=15)
    try:
        job = scheduler.get_job(JOB_ID)
        assert job is not None
        assert job.trigger.interval.total_seconds() == 15 * 60
        assert job.args == (zen,)
        assert job.next_run_time - datetime.now(job.next_run_time.tzinfo) > timedelta(minutes=14)
    finally:
        scheduler.shutdown(wait=False)
