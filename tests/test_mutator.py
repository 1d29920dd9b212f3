"""
Tests for atomic, idempotent balance mutations.
"""
import asyncio

import pytest

from voice_ledger.domain.ledger import (
    BalancePolicy,
    EventOwnerMismatch,
    InsufficientFunds,
    OverdraftPolicy,
    StoreUnavailable,
    TransactionMetadata,
    TransactionType,
)
from voice_ledger.domain.ledger.idempotency import IdempotencyLedger
from voice_ledger.domain.ledger.mutator import AccountMutator
from voice_ledger.domain.ledger.service import AccountService
from voice_ledger.infrastructure.database import session_scope
from voice_ledger.infrastructure.database.repositories import SqlAccountRepository

DEPOSIT = TransactionType.DEPOSIT
CHARGE = TransactionType.CALL_CHARGE
ADJUSTMENT = TransactionType.ADJUSTMENT


async def balance_of(container, user_id):
    async with session_scope(container.session_factory) as session:
        return await AccountService.with_session(session).get_balance(user_id)


async def transactions_of(container, user_id, limit=100):
    async with session_scope(container.session_factory) as session:
        return await AccountService.with_session(session).list_transactions(user_id, limit)


async def ledger_entry(container, event_id):
    async with session_scope(container.session_factory) as session:
        return await IdempotencyLedger.with_session(session).get(event_id)


def mutator_with(container, mode, grace_limit_cents=0):
    return AccountMutator(
        container.session_factory,
        policy=BalancePolicy(mode=mode, grace_limit_cents=grace_limit_cents),
        max_retries=25,
        retry_backoff_seconds=0.002,
    )


class TestApplyTransaction:
    async def test_deposit_creates_account_and_records_transaction(self, container):
        result = await container.mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 1000)

        assert result.new_balance_cents == 1000
        assert result.duplicate is False
        assert result.transaction.amount_cents == 1000
        assert result.transaction.balance_after_cents == 1000
        assert result.transaction.account_version == 1
        assert await balance_of(container, "user-1") == 1000

        entry = await ledger_entry(container, "deposit:cs_1")
        assert entry.is_completed
        assert entry.result_balance_cents == 1000
        assert entry.transaction_id == result.transaction.id

    async def test_replay_returns_prior_balance_without_mutation(self, container):
        await container.mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 1000)
        await container.mutator.apply_transaction("user-1", "deposit:cs_2", DEPOSIT, 500)

        replay = await container.mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 1000)

        assert replay.duplicate is True
        assert replay.new_balance_cents == 1000
        assert replay.transaction is None
        assert await balance_of(container, "user-1") == 1500
        assert len(await transactions_of(container, "user-1")) == 2

    async def test_replay_for_another_user_is_refused(self, container):
        await container.mutator.apply_transaction("alice", "deposit:cs_1", DEPOSIT, 9999)

        with pytest.raises(EventOwnerMismatch) as excinfo:
            await container.mutator.apply_transaction("mallory", "deposit:cs_1", DEPOSIT, 1)

        assert excinfo.value.event_id == "deposit:cs_1"
        assert excinfo.value.user_id == "mallory"
        assert await balance_of(container, "alice") == 9999
        assert await balance_of(container, "mallory") == 0
        assert await transactions_of(container, "mallory") == []
        assert (await ledger_entry(container, "deposit:cs_1")).user_id == "alice"

    async def test_charge_metadata_is_kept(self, container):
        await container.mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 1000)
        metadata = TransactionMetadata(call_id="CA1", destination="US", duration_seconds=95, billable_seconds=120)

        result = await container.mutator.apply_transaction("user-1", "call:CA1", CHARGE, -4, metadata)

        assert result.new_balance_cents == 996
        [latest, _] = await transactions_of(container, "user-1")
        assert latest.event_id == "call:CA1"
        assert latest.type is CHARGE
        assert latest.amount_cents == -4
        assert latest.metadata.billable_seconds == 120
        assert latest.metadata.destination == "US"

    async def test_transactions_listed_most_recent_first(self, container):
        for index in range(5):
            await container.mutator.apply_transaction("user-1", f"deposit:cs_{index}", DEPOSIT, 100 + index)

        records = await transactions_of(container, "user-1", limit=3)

        assert [record.amount_cents for record in records] == [104, 103, 102]
        assert [record.account_version for record in records] == [5, 4, 3]

    @pytest.mark.parametrize(
        "type, amount",
        [(DEPOSIT, 0), (DEPOSIT, -10), (CHARGE, 0), (CHARGE, 10), (ADJUSTMENT, 0)],
    )
    async def test_amount_sign_validated(self, container, type, amount):
        with pytest.raises(ValueError):
            await container.mutator.apply_transaction("user-1", "adjustment:x", type, amount)

        assert await ledger_entry(container, "adjustment:x") is None

    async def test_unknown_user_has_zero_balance(self, container):
        assert await balance_of(container, "nobody") == 0
        assert await transactions_of(container, "nobody") == []


class TestOverdraftPolicy:
    async def test_strict_rejects_debit_beyond_balance(self, container):
        await container.mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 100)

        with pytest.raises(InsufficientFunds) as excinfo:
            await container.mutator.apply_transaction("user-1", "call:CA1", CHARGE, -150)

        assert excinfo.value.balance_cents == 100
        assert excinfo.value.requested_cents == 150
        assert await balance_of(container, "user-1") == 100
        assert len(await transactions_of(container, "user-1")) == 1
        assert await ledger_entry(container, "call:CA1") is None

    async def test_strict_allows_debit_to_exactly_zero(self, container):
        await container.mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 100)

        result = await container.mutator.apply_transaction("user-1", "call:CA1", CHARGE, -100)

        assert result.new_balance_cents == 0

    async def test_rejected_event_can_be_applied_later(self, container):
        with pytest.raises(InsufficientFunds):
            await container.mutator.apply_transaction("user-1", "call:CA1", CHARGE, -50)

        await container.mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 100)
        result = await container.mutator.apply_transaction("user-1", "call:CA1", CHARGE, -50)

        assert result.duplicate is False
        assert result.new_balance_cents == 50

    async def test_grace_allows_bounded_negative_balance(self, container):
        mutator = mutator_with(container, OverdraftPolicy.GRACE, grace_limit_cents=500)

        first = await mutator.apply_transaction("user-1", "call:CA1", CHARGE, -300)
        assert first.new_balance_cents == -300

        with pytest.raises(InsufficientFunds):
            await mutator.apply_transaction("user-1", "call:CA2", CHARGE, -300)

        second = await mutator.apply_transaction("user-1", "call:CA3", CHARGE, -200)
        assert second.new_balance_cents == -500

    async def test_capped_collects_what_is_left(self, container):
        mutator = mutator_with(container, OverdraftPolicy.CAPPED)
        await mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 100)

        result = await mutator.apply_transaction("user-1", "call:CA1", CHARGE, -250)

        assert result.new_balance_cents == 0
        assert result.transaction.amount_cents == -100
        assert result.transaction.requested_amount_cents == -250

    async def test_capped_rejects_charge_when_nothing_is_left(self, container):
        mutator = mutator_with(container, OverdraftPolicy.CAPPED)

        with pytest.raises(InsufficientFunds) as excinfo:
            await mutator.apply_transaction("user-1", "call:CA1", CHARGE, -50)

        assert excinfo.value.balance_cents == 0
        assert excinfo.value.requested_cents == 50
        assert await transactions_of(container, "user-1") == []
        assert await ledger_entry(container, "call:CA1") is None

    async def test_capped_charge_after_draining_is_rejected(self, container):
        mutator = mutator_with(container, OverdraftPolicy.CAPPED)
        await mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 100)
        await mutator.apply_transaction("user-1", "call:CA1", CHARGE, -250)

        with pytest.raises(InsufficientFunds):
            await mutator.apply_transaction("user-1", "call:CA2", CHARGE, -30)

        records = await transactions_of(container, "user-1")
        assert [record.amount_cents for record in records] == [-100, 100]
        assert await balance_of(container, "user-1") == 0

    async def test_capped_still_rejects_adjustments(self, container):
        mutator = mutator_with(container, OverdraftPolicy.CAPPED)

        with pytest.raises(InsufficientFunds):
            await mutator.apply_transaction("user-1", "adjustment:a1", ADJUSTMENT, -50)


class TestConcurrency:
    async def test_concurrent_mutations_converge(self, container):
        await container.mutator.apply_transaction("user-1", "deposit:initial", DEPOSIT, 1000)

        deposits = [(f"deposit:cs_{i}", DEPOSIT, 100) for i in range(8)]
        charges = [(f"call:CA{i}", CHARGE, -50) for i in range(6)]
        operations = deposits + charges

        results = await asyncio.gather(
            *(
                container.mutator.apply_transaction("user-1", event_id, type, amount)
                for event_id, type, amount in operations
            )
        )

        assert not any(result.duplicate for result in results)
        assert await balance_of(container, "user-1") == 1000 + 8 * 100 - 6 * 50
        records = await transactions_of(container, "user-1")
        assert len(records) == len(operations) + 1
        assert sorted(record.account_version for record in records) == list(range(1, len(operations) + 2))

    async def test_concurrent_replays_apply_once(self, container):
        results = await asyncio.gather(
            *(container.mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 700) for _ in range(6))
        )

        assert sum(1 for result in results if not result.duplicate) == 1
        assert {result.new_balance_cents for result in results} == {700}
        assert await balance_of(container, "user-1") == 700
        assert len(await transactions_of(container, "user-1")) == 1

    async def test_independent_accounts(self, container):
        await asyncio.gather(
            *(
                container.mutator.apply_transaction(f"user-{i}", f"deposit:cs_{i}", DEPOSIT, 100 * (i + 1))
                for i in range(5)
            )
        )

        for i in range(5):
            assert await balance_of(container, f"user-{i}") == 100 * (i + 1)


class ConflictingAccountRepository(SqlAccountRepository):
    async def compare_and_set_balance(self, user_id, *, expected_version, new_balance_cents):
        return False


class TestStoreFailures:
    async def test_exhausted_retries_raise_store_unavailable(self, container):
        mutator = AccountMutator(
            container.session_factory,
            max_retries=2,
            retry_backoff_seconds=0.001,
            account_repository_factory=ConflictingAccountRepository,
        )

        with pytest.raises(StoreUnavailable):
            await mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 1000)

        assert await ledger_entry(container, "deposit:cs_1") is None
        assert await balance_of(container, "user-1") == 0

    async def test_event_reserved_elsewhere_is_in_progress(self, container):
        async with session_scope(container.session_factory) as session:
            await IdempotencyLedger.with_session(session).reserve("deposit:cs_1", source="payment", user_id="user-1")

        with pytest.raises(StoreUnavailable):
            await container.mutator.apply_transaction("user-1", "deposit:cs_1", DEPOSIT, 1000)

        assert await balance_of(container, "user-1") == 0
