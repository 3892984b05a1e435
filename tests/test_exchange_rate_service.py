"""
Exchange rate service tests: identity, caching, fallback sourcing and stale degradation.
"""

import asyncio

import pytest

from costcalc.core.exceptions import ConversionError, RateUnavailable
from costcalc.schemas.currency_rate import RateOrigin


@pytest.mark.asyncio
async def test_identity_rate_without_network(exchange_rate_service, primary_source, fallback_source):
    snapshot = await exchange_rate_service.get_rate("EUR", "eur")

    assert snapshot.rate == 1.0
    assert snapshot.source == RateOrigin.LOCAL
    assert primary_source.calls == 0
    assert fallback_source.calls == 0


@pytest.mark.asyncio
async def test_cache_hit_within_ttl(exchange_rate_service, primary_source, clock):
    first = await exchange_rate_service.get_rate("USD", "EUR")
    clock.advance(299)
    second = await exchange_rate_service.get_rate("USD", "EUR")

    assert primary_source.calls == 1
    assert first.rate == second.rate == 0.9
    assert second.source == RateOrigin.API


@pytest.mark.asyncio
async def test_refetch_after_ttl(exchange_rate_service, primary_source, clock):
    await exchange_rate_service.get_rate("USD", "EUR")
    clock.advance(301)
    await exchange_rate_service.get_rate("USD", "EUR")

    assert primary_source.calls == 2


@pytest.mark.asyncio
async def test_fallback_used_when_primary_fails(exchange_rate_service, primary_source, fallback_source):
    primary_source.fail = True

    snapshot = await exchange_rate_service.get_rate("USD", "EUR")

    assert snapshot.rate == 0.95
    assert snapshot.source == RateOrigin.FALLBACK_API
    assert fallback_source.calls == 1


@pytest.mark.asyncio
async def test_expired_cache_served_when_all_sources_fail(
    exchange_rate_service, primary_source, fallback_source, clock
):
    await exchange_rate_service.get_rate("USD", "GBP")
    clock.advance(3600)
    primary_source.fail = True
    fallback_source.fail = True

    snapshot = await exchange_rate_service.get_rate("USD", "GBP")

    assert snapshot.rate == 0.8
    assert snapshot.stale is True
    assert snapshot.source == RateOrigin.CACHE


@pytest.mark.asyncio
async def test_rate_unavailable_without_cache(exchange_rate_service, primary_source, fallback_source):
    primary_source.fail = True
    fallback_source.fail = True

    with pytest.raises(RateUnavailable) as exc_info:
        await exchange_rate_service.get_rate("USD", "EUR")

    assert not isinstance(exc_info.value, ConversionError)
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_missing_target_raises_conversion_error(exchange_rate_service):
    with pytest.raises(ConversionError):
        await exchange_rate_service.get_rate("USD", "JPY")


@pytest.mark.asyncio
async def test_multiple_rates_single_fetch(exchange_rate_service, primary_source):
    snapshots = await exchange_rate_service.get_multiple_rates("usd", ["EUR", "GBP", "USD", "EUR", "JPY"])

    assert primary_source.calls == 1
    assert [(s.to_currency, s.rate) for s in snapshots] == [("EUR", 0.9), ("GBP", 0.8), ("USD", 1.0)]


@pytest.mark.asyncio
async def test_multiple_rates_served_from_cache(exchange_rate_service, primary_source):
    await exchange_rate_service.get_multiple_rates("USD", ["EUR", "GBP"])
    await exchange_rate_service.get_multiple_rates("USD", ["GBP", "EUR"])

    assert primary_source.calls == 1


@pytest.mark.asyncio
async def test_multiple_rates_fall_back_to_stale(exchange_rate_service, primary_source, fallback_source, clock):
    await exchange_rate_service.get_multiple_rates("USD", ["EUR"])
    clock.advance(600)
    primary_source.fail = True
    fallback_source.fail = True

    snapshots = await exchange_rate_service.get_multiple_rates("USD", ["EUR", "GBP"])

    assert len(snapshots) == 1
    assert snapshots[0].stale is True


@pytest.mark.asyncio
async def test_multiple_rates_raise_without_any_cache(exchange_rate_service, primary_source, fallback_source):
    primary_source.fail = True
    fallback_source.fail = True

    with pytest.raises(RateUnavailable):
        await exchange_rate_service.get_multiple_rates("USD", ["EUR"])


@pytest.mark.asyncio
async def test_cache_stats_and_clear(exchange_rate_service, clock):
    await exchange_rate_service.get_rate("USD", "EUR")
    await exchange_rate_service.get_rate("EUR", "USD")
    clock.advance(400)

    stats = exchange_rate_service.get_cache_stats()
    assert stats.size == 2
    assert {entry.key for entry in stats.entries} == {"USD_EUR", "EUR_USD"}
    assert all(entry.expired for entry in stats.entries)

    exchange_rate_service.clear_cache()
    assert exchange_rate_service.get_cache_stats().size == 0


@pytest.mark.asyncio
async def test_fetched_rates_recorded_in_history(exchange_rate_service, rate_history, clock):
    await exchange_rate_service.get_rate("USD", "EUR")
    clock.advance(301)
    await exchange_rate_service.get_rate("USD", "EUR")

    assert len(rate_history.get_rate_history("USD", "EUR")) == 2


@pytest.mark.asyncio
async def test_concurrent_lookups_cache_each_pair(exchange_rate_service, primary_source):
    primary_source.delay = 0.01
    pairs = {
        ("USD", "EUR"): 0.9,
        ("EUR", "USD"): 1.1,
        ("GBP", "USD"): 1.25,
        ("USD", "GBP"): 0.8,
        ("EUR", "GBP"): 0.87,
    }

    snapshots = await asyncio.gather(*(exchange_rate_service.get_rate(a, b) for a, b in pairs))

    assert [snapshot.rate for snapshot in snapshots] == list(pairs.values())
    assert exchange_rate_service.get_cache_stats().size == len(pairs)
    for (base, target), rate in pairs.items():
        cached = await exchange_rate_service.get_rate(base, target)
        assert cached.rate == rate
    assert primary_source.calls == len(pairs)
