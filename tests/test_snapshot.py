"""
Tests for loading versioned pricing snapshots from the database.
"""
from decimal import Decimal

from voice_ledger.domain.pricing import MarkupConfig


class TestPricingSnapshotProvider:
    async def test_empty_store_yields_empty_snapshot(self, container):
        snapshot = await container.pricing.current()

        assert snapshot.version == "0.0"
        assert len(snapshot.rates) == 0

    async def test_loads_latest_rate_table(self, container, publish_pricing):
        await publish_pricing({"US": "0.02", "gb": "0.035"})

        snapshot = await container.pricing.current()

        assert snapshot.rate_version == 1
        assert set(snapshot.rates) == {"US", "GB"}
        assert snapshot.get("gb").base_price == Decimal("0.035")

    async def test_unchanged_versions_reuse_snapshot(self, container, publish_pricing):
        await publish_pricing({"US": "0.02"})

        first = await container.pricing.current()
        second = await container.pricing.current()

        assert first is second

    async def test_new_markup_produces_new_snapshot(self, container, publish_pricing):
        await publish_pricing({"US": "0.02"})
        before = await container.pricing.current()

        await publish_pricing({"US": "0.02"}, markup=MarkupConfig(default_markup_percent=Decimal("50")))
        after = await container.pricing.current()

        assert after is not before
        assert after.version == "2.1"
        assert before.version == "1.0"
        assert before.markup.default_markup_percent == Decimal("0")
        resolver = await container.pricing.resolver()
        assert resolver.resolve_rate("US").effective_rate_per_unit == Decimal("0.03")

    async def test_replaced_table_drops_missing_destinations(self, container, publish_pricing):
        await publish_pricing({"US": "0.02", "FR": "0.05"})
        await container.pricing.current()

        await publish_pricing({"US": "0.025"})
        snapshot = await container.pricing.current()

        assert snapshot.get("FR") is None
        assert snapshot.get("US").base_price == Decimal("0.025")

    async def test_markup_overrides_round_trip(self, container, publish_pricing):
        markup = MarkupConfig(
            default_markup_percent=Decimal("10"),
            minimum_markup_percent=Decimal("5"),
            minimum_final_price=Decimal("0.01"),
            overrides={"GB": Decimal("25.5")},
        )
        await publish_pricing({"US": "0.02", "GB": "0.04"}, markup=markup)

        snapshot = await container.pricing.current()

        assert snapshot.markup.overrides["GB"] == Decimal("25.5")
        assert snapshot.markup.minimum_final_price == Decimal("0.01")
