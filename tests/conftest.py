"""Shared fixtures: an isolated SQLite database per test and a wired container."""
import hashlib
import hmac
import json
import time
from decimal import Decimal

import pytest
import pytest_asyncio

from voice_ledger.core.config import Settings
from voice_ledger.core.container import ApplicationContainer
from voice_ledger.core.security import create_access_token
from voice_ledger.domain.pricing import MarkupConfig, RateEntry
from voice_ledger.domain.pricing.service import PricingService
from voice_ledger.infrastructure.database import init_db, session_scope

PAYMENT_SECRET = "whsec_test_secret"
TELEPHONY_TOKEN = "telephony-test-token"
PUBLIC_BASE_URL = "https://ledger.example.com"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        database={"url": f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"},
        security={"secret_key": "test-secret-key"},
        payments={"webhook_secret": PAYMENT_SECRET},
        telephony={"auth_token": TELEPHONY_TOKEN, "public_base_url": PUBLIC_BASE_URL},
        ledger={"max_retries": 25, "retry_backoff_seconds": 0.002},
    )


@pytest_asyncio.fixture
async def container(settings):
    container = ApplicationContainer.build(settings)
    await init_db(container.engine)
    yield container
    await container.shutdown()


@pytest.fixture
def publish_pricing(container):
    """Commit a rate table (and optionally a markup revision)."""

    async def publish(rates: dict, markup: MarkupConfig | None = None, increment: int = 60) -> None:
        async with session_scope(container.session_factory) as session:
            service = PricingService.with_session(session)
            await service.replace_rate_table(
                RateEntry(destination=code, base_price=Decimal(price), billing_increment_seconds=increment)
                for code, price in rates.items()
            )
            if markup is not None:
                await service.update_markup(markup)

    return publish


@pytest.fixture
def stripe_payload():
    """Build a signed checkout webhook body and its ``Stripe-Signature`` header."""

    def build(event: dict, secret: str = PAYMENT_SECRET, timestamp: int | None = None) -> tuple[bytes, str]:
        body = json.dumps(event)
        timestamp = timestamp or int(time.time())
        signed = f"{timestamp}.{body}".encode("utf-8")
        signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return body.encode("utf-8"), f"t={timestamp},v1={signature}"

    return build


def checkout_event(session_id: str, user_id: str | None = "user-1", amount: str = "10.00", status: str = "paid") -> dict:
    metadata = {"amountToAdd": amount}
    if user_id is not None:
        metadata["userId"] = user_id
    return {
        "id": f"evt_{session_id}",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_status": status,
                "amount_total": 1000,
                "metadata": metadata,
            }
        },
    }


@pytest.fixture
def checkout():
    return checkout_event


@pytest.fixture
def auth_headers(settings):
    def headers(user_id: str = "user-1", role: str = "user") -> dict:
        token = create_access_token(settings.security, user_id, role)
        return {"Authorization": f"Bearer {token}"}

    return headers
