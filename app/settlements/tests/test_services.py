"""
Tests for SplitLedgerService.

Covers:
- Recording the positive per-party split entries
- Reversing a split (inverse entries, idempotency, failure codes)
- Ledger immutability and net amounts
"""

import pytest

from audit.models import AuditAction, AuditLog
from authentication.models import ActorRole
from authentication.tests.factories import UserFactory
from orders.tests.factories import OrderFactory, PaymentFactory, StoreFactory
from settlements.exceptions import LedgerImmutableError, SplitAmountMismatch
from settlements.models import LedgerEntryType, PartyRole, SplitStatus
from settlements.services import SplitLedgerService
from settlements.tests.factories import PaymentSplitFactory


@pytest.fixture
def split(db):
    store = StoreFactory()
    order = OrderFactory(store=store)
    return PaymentSplitFactory(payment=PaymentFactory(order=order))


@pytest.fixture
def recorded_split(split):
    SplitLedgerService.record_split(split)
    return split


@pytest.mark.django_db
class TestRecordSplit:
    def test_posts_one_entry_per_party(self, split):
        entries = SplitLedgerService.record_split(split)

        assert [(e.party_role, e.amount_cents) for e in entries] == [
            (PartyRole.SUPPLIER, 7000),
            (PartyRole.RESELLER, 2000),
            (PartyRole.PLATFORM, 1000),
        ]
        assert all(e.entry_type == LedgerEntryType.SPLIT for e in entries)
        assert SplitLedgerService.get_net_amount(split.order) == 10000

    def test_zero_shares_skipped(self, db):
        split = PaymentSplitFactory(
            supplier_amount_cents=9000,
            reseller_amount_cents=0,
            platform_amount_cents=1000,
        )

        entries = SplitLedgerService.record_split(split)

        assert {e.party_role for e in entries} == {PartyRole.SUPPLIER, PartyRole.PLATFORM}

    def test_idempotent(self, split):
        first = SplitLedgerService.record_split(split)
        second = SplitLedgerService.record_split(split)

        assert [e.pk for e in first] == [e.pk for e in second]
        assert split.entries.count() == 3

    def test_mismatched_shares_rejected(self):
        split = PaymentSplitFactory.build(total_amount_cents=10000, supplier_amount_cents=6000)

        with pytest.raises(SplitAmountMismatch):
            SplitLedgerService.record_split(split)


@pytest.mark.django_db
class TestReverseSplit:
    def test_appends_inverse_entries(self, recorded_split):
        order = recorded_split.order

        result = SplitLedgerService.reverse_split(order, reason="Refund: Damaged")

        assert result.success
        reversal = result.data
        assert reversal.already_reversed is False
        assert sorted(e.amount_cents for e in reversal.entries) == [-7000, -2000, -1000]
        assert reversal.reversed_amounts == {"supplier": 7000, "reseller": 2000, "platform": 1000}
        assert all(e.reverses is not None for e in reversal.entries)
        assert all(e.description == "Refund: Damaged" for e in reversal.entries)
        assert SplitLedgerService.get_net_amount(order) == 0
        assert SplitLedgerService.get_net_amount(order, PartyRole.SUPPLIER) == 0

    def test_originals_left_intact(self, recorded_split):
        SplitLedgerService.reverse_split(recorded_split.order, reason="Refund")

        originals = recorded_split.entries.filter(entry_type=LedgerEntryType.SPLIT)
        assert sorted(e.amount_cents for e in originals) == [1000, 2000, 7000]

    def test_marks_split_settled(self, recorded_split):
        SplitLedgerService.reverse_split(recorded_split.order, reason="Refund")

        recorded_split.refresh_from_db()
        assert recorded_split.status == SplitStatus.SETTLED

    def test_records_actor_metadata(self, recorded_split):
        actor = UserFactory(store=recorded_split.store)

        result = SplitLedgerService.reverse_split(
            recorded_split.order,
            reason="Refund",
            actor=actor,
            actor_role=ActorRole.ADMIN,
        )

        metadata = result.data.entries[0].metadata
        assert metadata["reversal"] is True
        assert metadata["actor_id"] == str(actor.pk)
        assert metadata["actor_role"] == "admin"
        assert metadata["refund_id"] is None

    def test_writes_audit_entry(self, recorded_split):
        SplitLedgerService.reverse_split(recorded_split.order, reason="Refund")

        entry = AuditLog.objects.get(action=AuditAction.SPLIT_REVERSED)
        assert entry.entity_type == "PaymentSplit"
        assert entry.entity_id == str(recorded_split.pk)
        assert entry.actor_role == ActorRole.SYSTEM
        assert entry.after["reversed_amounts"]["supplier"] == 7000

    def test_second_reversal_is_noop(self, recorded_split):
        first = SplitLedgerService.reverse_split(recorded_split.order, reason="Refund")
        second = SplitLedgerService.reverse_split(recorded_split.order, reason="Refund again")

        assert second.success
        assert second.data.already_reversed is True
        assert {e.pk for e in second.data.entries} == {e.pk for e in first.data.entries}
        assert SplitLedgerService.get_net_amount(recorded_split.order) == 0
        assert AuditLog.objects.filter(action=AuditAction.SPLIT_REVERSED).count() == 1

    def test_missing_split(self, db):
        result = SplitLedgerService.reverse_split(OrderFactory(), reason="Refund")

        assert not result.success
        assert result.error_code == "SPLIT_NOT_FOUND"

    def test_nothing_posted(self, split):
        result = SplitLedgerService.reverse_split(split.order, reason="Refund")

        assert not result.success
        assert result.error_code == "SPLIT_ENTRIES_NOT_FOUND"

    def test_unknown_actor_role_rejected(self, recorded_split):
        with pytest.raises(ValueError):
            SplitLedgerService.reverse_split(recorded_split.order, reason="Refund", actor_role="owner")


@pytest.mark.django_db
class TestLedgerImmutability:
    def test_entries_cannot_be_modified(self, recorded_split):
        entry = recorded_split.entries.first()
        entry.amount_cents = 1

        with pytest.raises(LedgerImmutableError):
            entry.save()

    def test_entries_cannot_be_deleted(self, recorded_split):
        with pytest.raises(LedgerImmutableError):
            recorded_split.entries.first().delete()
