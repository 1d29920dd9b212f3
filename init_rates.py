"""
Seed the pricing tables.
Publishes a rate table and markup config from a JSON file, or a small sample
when no file is given:

    python init_rates.py [rates.json]

The file holds {"rates": [{"destination", "base_price", ...}], "markup": {...}}.
"""
import asyncio
import json
import sys
from decimal import Decimal
from pathlib import Path

from voice_ledger.core.config import get_settings
from voice_ledger.domain.pricing import MarkupConfig, RateEntry
from voice_ledger.domain.pricing.service import PricingService
from voice_ledger.infrastructure.database import build_engine, build_session_factory, init_db, session_scope

SAMPLE = {
    "rates": [
        {"destination": "US", "country_name": "United States", "base_price": "0.02"},
        {"destination": "CA", "country_name": "Canada", "base_price": "0.02"},
        {"destination": "GB", "country_name": "United Kingdom", "base_price": "0.035"},
        {"destination": "DE", "country_name": "Germany", "base_price": "0.04"},
        {"destination": "IN", "country_name": "India", "base_price": "0.025", "billing_increment_seconds": 30},
    ],
    "markup": {"default_markup_percent": "20", "minimum_markup_percent": "10", "minimum_final_price": "0.01"},
}


def load_source(argv: list[str]) -> dict:
    if len(argv) > 1:
        return json.loads(Path(argv[1]).read_text(encoding="utf-8"))
    return SAMPLE


async def seed_pricing(source: dict) -> None:
    settings = get_settings()
    engine = build_engine(settings.database)
    await init_db(engine)

    increment = settings.pricing.default_billing_increment_seconds
    entries = [
        RateEntry(
            destination=item["destination"],
            base_price=Decimal(str(item["base_price"])),
            billing_increment_seconds=int(item.get("billing_increment_seconds") or increment),
            country_name=item.get("country_name"),
        )
        for item in source.get("rates", [])
    ]
    markup = source.get("markup")

    async with session_scope(build_session_factory(engine)) as db:
        service = PricingService.with_session(db)
        version = await service.replace_rate_table(entries)
        print(f"Rate table version {version} created with {len(entries)} destinations")
        if markup:
            revision = await service.update_markup(
                MarkupConfig(
                    default_markup_percent=Decimal(str(markup.get("default_markup_percent", "0"))),
                    minimum_markup_percent=Decimal(str(markup.get("minimum_markup_percent", "0"))),
                    minimum_final_price=Decimal(str(markup.get("minimum_final_price", "0"))),
                    overrides={
                        key: Decimal(str(value)) for key, value in (markup.get("overrides") or {}).items()
                    },
                )
            )
            print(f"Markup revision {revision} created")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_pricing(load_source(sys.argv)))
