"""
Tests for the event processor: pricing, mutation and outcome mapping.
"""
import asyncio
from decimal import Decimal

from voice_ledger.domain.events import (
    AdjustmentEvent,
    CallCompletedEvent,
    CallStatus,
    DepositEvent,
    EventOutcome,
    compute_telephony_signature,
)
from voice_ledger.domain.events.processor import EventProcessor
from voice_ledger.domain.ledger.idempotency import IdempotencyLedger
from voice_ledger.domain.ledger.service import AccountService
from voice_ledger.infrastructure.database import session_scope

from conftest import TELEPHONY_TOKEN

CALLBACK_URL = "https://ledger.example.com/api/webhooks/calls/status?user_id=user-1"


async def balance_of(container, user_id="user-1"):
    async with session_scope(container.session_factory) as session:
        return await AccountService.with_session(session).get_balance(user_id)


async def transactions_of(container, user_id="user-1"):
    async with session_scope(container.session_factory) as session:
        return await AccountService.with_session(session).list_transactions(user_id, 100)


def call_event(call_id="CA1", status=CallStatus.COMPLETED, duration=95, destination="US"):
    return CallCompletedEvent(
        call_id=call_id,
        user_id="user-1",
        status=status,
        duration_seconds=duration,
        destination=destination,
    )


class TestDeposits:
    async def test_deposit_then_replay(self, container):
        event = DepositEvent(session_id="cs_1", user_id="user-1", amount_cents=1000)

        first = await container.processor.process(event)
        replay = await container.processor.process(event)

        assert first.outcome is EventOutcome.ACKNOWLEDGED
        assert first.applied is True
        assert first.new_balance_cents == 1000
        assert replay.outcome is EventOutcome.ACKNOWLEDGED
        assert replay.duplicate is True
        assert replay.new_balance_cents == 1000
        assert await balance_of(container) == 1000
        assert len(await transactions_of(container)) == 1

    async def test_replayed_deposit_on_funded_account(self, container):
        await container.processor.process(DepositEvent(session_id="initial", user_id="user-1", amount_cents=1000))
        event = DepositEvent(session_id="dep1", user_id="user-1", amount_cents=500)

        first = await container.processor.process(event)
        replay = await container.processor.process(event)

        assert first.new_balance_cents == 1500
        assert replay.outcome is EventOutcome.ACKNOWLEDGED
        assert replay.duplicate is True
        assert replay.new_balance_cents == 1500
        assert await balance_of(container) == 1500
        records = await transactions_of(container)
        assert [record.event_id for record in records].count("deposit:dep1") == 1

    async def test_session_replayed_for_another_user(self, container):
        await container.processor.process(DepositEvent(session_id="cs_1", user_id="alice", amount_cents=9999))

        result = await container.processor.process(
            DepositEvent(session_id="cs_1", user_id="mallory", amount_cents=1)
        )

        assert result.outcome is EventOutcome.MALFORMED
        assert result.http_status == 400
        assert result.duplicate is False
        assert result.new_balance_cents is None
        assert await balance_of(container, "mallory") == 0
        assert await balance_of(container, "alice") == 9999

    async def test_signed_webhook(self, container, stripe_payload, checkout):
        payload, header = stripe_payload(checkout("cs_1", amount="25.00"))

        result = await container.processor.handle_payment_webhook(payload, header)

        assert result.outcome is EventOutcome.ACKNOWLEDGED
        assert result.event_id == "deposit:cs_1"
        assert await balance_of(container) == 2500

    async def test_bad_signature_touches_nothing(self, container, stripe_payload, checkout):
        payload, header = stripe_payload(checkout("cs_1"), secret="whsec_wrong")

        result = await container.processor.handle_payment_webhook(payload, header)

        assert result.outcome is EventOutcome.AUTHENTICATION_FAILED
        assert result.http_status == 401
        assert await balance_of(container) == 0

    async def test_malformed_json_with_valid_signature(self, container, stripe_payload):
        payload, header = stripe_payload(["not", "an", "event"])

        result = await container.processor.handle_payment_webhook(payload, header)

        assert result.outcome is EventOutcome.MALFORMED
        assert result.http_status == 400

    async def test_signed_event_with_non_object_data(self, container, stripe_payload):
        payload, header = stripe_payload({"id": "evt_1", "type": "checkout.session.completed", "data": ["x"]})

        result = await container.processor.handle_payment_webhook(payload, header)

        assert result.outcome is EventOutcome.MALFORMED
        assert result.http_status == 400

    async def test_signed_checkout_with_non_object_metadata(self, container, stripe_payload, checkout):
        body = checkout("cs_1")
        body["data"]["object"]["metadata"] = ["x"]
        payload, header = stripe_payload(body)

        result = await container.processor.handle_payment_webhook(payload, header)

        assert result.outcome is EventOutcome.MALFORMED
        assert result.http_status == 400
        assert await balance_of(container) == 0

    async def test_unpaid_checkout_acknowledged_without_credit(self, container, stripe_payload, checkout):
        payload, header = stripe_payload(checkout("cs_1", status="unpaid"))

        result = await container.processor.handle_payment_webhook(payload, header)

        assert result.outcome is EventOutcome.ACKNOWLEDGED
        assert result.applied is False
        assert await transactions_of(container) == []


class TestCalls:
    async def test_completed_call_is_charged(self, container, publish_pricing):
        await publish_pricing({"US": "0.02"})
        await container.processor.process(DepositEvent(session_id="cs_1", user_id="user-1", amount_cents=1000))

        result = await container.processor.process(call_event(duration=95))

        assert result.outcome is EventOutcome.ACKNOWLEDGED
        assert result.amount_cents == -4
        assert result.new_balance_cents == 996
        [charge, _] = await transactions_of(container)
        assert charge.event_id == "call:CA1"
        assert charge.metadata.billable_seconds == 120
        assert charge.metadata.duration_seconds == 95
        assert charge.metadata.rate_per_unit == Decimal("0.02")
        assert charge.metadata.pricing_version == "1.0"

    async def test_repeated_callback_charges_once(self, container, publish_pricing):
        await publish_pricing({"US": "0.02"})
        await container.processor.process(DepositEvent(session_id="cs_1", user_id="user-1", amount_cents=1000))

        results = await asyncio.gather(*(container.processor.process(call_event()) for _ in range(4)))

        assert all(result.outcome is EventOutcome.ACKNOWLEDGED for result in results)
        assert sum(1 for result in results if result.applied) == 1
        assert await balance_of(container) == 996

    async def test_unanswered_call_changes_nothing(self, container, publish_pricing):
        await publish_pricing({"US": "0.02"})
        await container.processor.process(DepositEvent(session_id="cs_1", user_id="user-1", amount_cents=1000))

        result = await container.processor.process(call_event(status=CallStatus.NO_ANSWER, duration=30))

        assert result.outcome is EventOutcome.ACKNOWLEDGED
        assert result.applied is False
        assert await balance_of(container) == 1000
        assert len(await transactions_of(container)) == 1

    async def test_in_progress_call_is_acknowledged(self, container):
        result = await container.processor.process(call_event(status=CallStatus.RINGING, duration=0))

        assert result.outcome is EventOutcome.ACKNOWLEDGED
        assert await transactions_of(container) == []

    async def test_unknown_destination_is_rejected(self, container, publish_pricing):
        await publish_pricing({"US": "0.02"})
        await container.processor.process(DepositEvent(session_id="cs_1", user_id="user-1", amount_cents=1000))

        result = await container.processor.process(call_event(destination="ZZ9"))

        assert result.outcome is EventOutcome.REJECTED
        assert result.http_status == 422
        assert await balance_of(container) == 1000

    async def test_insufficient_funds_is_rejected(self, container, publish_pricing):
        await publish_pricing({"US": "0.02"})

        result = await container.processor.process(call_event(duration=600))

        assert result.outcome is EventOutcome.REJECTED
        assert await balance_of(container) == 0
        async with session_scope(container.session_factory) as session:
            assert await IdempotencyLedger.with_session(session).get("call:CA1") is None

    async def test_missing_destination_is_malformed(self, container, publish_pricing):
        await publish_pricing({"US": "0.02"})

        result = await container.processor.process(call_event(destination=None))

        assert result.outcome is EventOutcome.MALFORMED

    async def test_signed_status_callback(self, container, publish_pricing):
        await publish_pricing({"US": "0.02"})
        await container.processor.process(DepositEvent(session_id="cs_1", user_id="user-1", amount_cents=1000))
        params = {"CallSid": "CA9", "CallStatus": "completed", "CallDuration": "61", "To": "+16502530000"}
        signature = compute_telephony_signature(TELEPHONY_TOKEN, CALLBACK_URL, params)

        result = await container.processor.handle_call_status(CALLBACK_URL, params, signature, user_id="user-1")

        assert result.outcome is EventOutcome.ACKNOWLEDGED
        assert result.new_balance_cents == 996

    async def test_unsigned_status_callback_rejected(self, container):
        params = {"CallSid": "CA9", "CallStatus": "completed", "CallDuration": "61"}

        result = await container.processor.handle_call_status(
            CALLBACK_URL, params, "bogus", user_id="user-1", destination="US"
        )

        assert result.outcome is EventOutcome.AUTHENTICATION_FAILED

    async def test_unsigned_callbacks_when_allowed(self, container, publish_pricing):
        await publish_pricing({"US": "0.02"})
        processor = EventProcessor(container.mutator, container.pricing, accept_unsigned_callbacks=True)
        await processor.process(DepositEvent(session_id="cs_1", user_id="user-1", amount_cents=1000))

        result = await processor.handle_call_status(
            CALLBACK_URL,
            {"CallSid": "CA9", "CallStatus": "completed", "CallDuration": "30"},
            None,
            user_id="user-1",
            destination="US",
        )

        assert result.outcome is EventOutcome.ACKNOWLEDGED
        assert result.new_balance_cents == 998


class TestAdjustments:
    async def test_signed_adjustments(self, container):
        credit = AdjustmentEvent(user_id="user-1", idempotency_key="adj-1", amount_cents=500)
        debit = AdjustmentEvent(user_id="user-1", idempotency_key="adj-2", amount_cents=-200)

        await container.processor.process(credit)
        result = await container.processor.process(debit)

        assert result.new_balance_cents == 300
        assert (await container.processor.process(credit)).duplicate is True
        assert await balance_of(container) == 300


class SlowPricing:
    async def resolver(self):
        await asyncio.sleep(5)


class TestTransientFailures:
    async def test_timeout_is_transient(self, container):
        processor = EventProcessor(container.mutator, SlowPricing(), timeout_seconds=0.05)

        result = await processor.process(call_event())

        assert result.outcome is EventOutcome.TRANSIENT
        assert result.http_status == 503
        assert await balance_of(container) == 0
