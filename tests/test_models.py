"""Tests for the pydantic models: entries, obligations, users, audit events."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from amanah.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Direction,
    Divisible,
    EntryStatus,
    EntryType,
    Indivisible,
    LedgerEntry,
    PaymentRecord,
    ReminderSettings,
    User,
)
from amanah.errors import ValidationError


CREATED = datetime(2024, 1, 5, 12, 0, tzinfo=timezone.utc)


def _entry(**overrides) -> LedgerEntry:
    fields = dict(
        creator_id="alice",
        target_user_id="bob",
        partner_name="Bob",
        type=EntryType.DEBT,
        direction=Direction.OWED_TO_ME,
        amount="$100",
        obligation=Divisible(total=Decimal("100"), remaining=Decimal("100")),
        status=EntryStatus.CONFIRMED,
        created_at=CREATED,
        confirmed_at=CREATED,
    )
    fields.update(overrides)
    return LedgerEntry(**fields)


class TestObligationVariant:
    """Tests for the Indivisible | Divisible obligation union."""

    def test_divisible_rejects_remaining_above_total(self):
        with pytest.raises(ValueError, match="cannot exceed the total"):
            Divisible(total=Decimal("100"), remaining=Decimal("150"))

    def test_divisible_rejects_negative_remaining(self):
        with pytest.raises(ValueError):
            Divisible(total=Decimal("100"), remaining=Decimal("-1"))

    def test_divisible_rejects_unbalanced_log(self):
        with pytest.raises(ValueError, match="does not equal the total"):
            Divisible(
                total=Decimal("100"),
                remaining=Decimal("0"),
                payment_log=[PaymentRecord(amount=Decimal("40"), date=CREATED)],
            )

    def test_paid_total_ignores_reverted_payments(self):
        obligation = Divisible(
            total=Decimal("100"),
            remaining=Decimal("70"),
            payment_log=[
                PaymentRecord(amount=Decimal("30"), date=CREATED),
                PaymentRecord(amount=Decimal("20"), date=CREATED, is_reverted=True),
            ],
        )
        assert obligation.paid_total == Decimal("30")
        assert len(obligation.active_payments) == 1

    def test_payment_must_be_positive(self):
        with pytest.raises(ValueError):
            PaymentRecord(amount=Decimal("0"), date=CREATED)

    def test_discriminator_restores_variant_from_dict(self):
        entry = _entry()
        restored = LedgerEntry.model_validate(entry.model_dump(mode="json"))
        assert isinstance(restored.obligation, Divisible)
        assert restored.remaining_amount == Decimal("100")

    def test_indivisible_has_no_numeric_views(self):
        entry = _entry(type=EntryType.AMANAH, amount="Gold Ring", obligation=Indivisible())
        assert entry.numeric_amount is None
        assert entry.remaining_amount is None
        assert entry.payment_log is None
        assert not entry.is_divisible


class TestLedgerEntry:
    """Tests for LedgerEntry lifecycle invariants."""

    def test_is_confirmed_is_derived_from_status(self):
        pending = _entry(status=EntryStatus.PENDING, confirmed_at=None)
        assert pending.is_confirmed is False
        assert _entry().is_confirmed is True

    def test_is_confirmed_is_serialized(self):
        assert _entry().model_dump()["is_confirmed"] is True

    def test_resolved_status_requires_resolved_at(self):
        with pytest.raises(ValueError, match="must have resolved_at"):
            _entry(status=EntryStatus.FULFILLED)

    def test_active_status_cannot_carry_resolved_at(self):
        with pytest.raises(ValueError, match="cannot have resolved_at"):
            _entry(resolved_at=CREATED)

    def test_pending_cannot_be_confirmed(self):
        with pytest.raises(ValueError, match="pending entry cannot have confirmed_at"):
            _entry(status=EntryStatus.PENDING)

    def test_creator_cannot_be_counterpart(self):
        with pytest.raises(ValueError):
            _entry(target_user_id="alice")

    def test_partner_name_is_required(self):
        with pytest.raises(ValueError):
            _entry(partner_name="   ")

    def test_involves_both_parties_only(self):
        entry = _entry()
        assert entry.involves("alice")
        assert entry.involves("bob")
        assert not entry.involves("carol")

    def test_unlinked_entry_involves_creator_only(self):
        entry = _entry(target_user_id=None)
        assert entry.involves("alice")
        assert not entry.involves("bob")


class TestUsers:
    """Tests for users and reminder preferences."""

    def test_reminder_settings_default_to_everything_on(self):
        settings = ReminderSettings()
        assert settings.allows(7)
        assert settings.allows(1)

    def test_master_switch_disables_both_thresholds(self):
        settings = ReminderSettings(enabled=False)
        assert not settings.allows(7)
        assert not settings.allows(1)

    def test_individual_thresholds(self):
        settings = ReminderSettings(seven_day=False)
        assert not settings.allows(7)
        assert settings.allows(1)

    def test_unknown_threshold_is_never_allowed(self):
        assert not ReminderSettings().allows(3)

    def test_user_strips_whitespace(self):
        user = User(name="  Alice  ", email="alice@example.com")
        assert user.name == "Alice"
        assert user.id


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.ENTRY_CREATED,
            description="Entry created",
        )
        assert event.event_id is not None
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        event = AuditEventBuilder.payment_recorded(
            entry_id="e1",
            actor_id="bob",
            amount=Decimal("100"),
            remaining=Decimal("150"),
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "payment_recorded"
        assert log_dict["entity_id"] == "e1"
        assert log_dict["details"] == {"amount": "100", "remaining": "150"}
        assert log_dict["correlation_id"] is None

    def test_operation_rejected_records_error_class(self):
        event = AuditEventBuilder.operation_rejected(
            operation="record_payment",
            error=ValidationError("too much"),
            entity_id="e1",
            actor_id="bob",
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "ValidationError"
        assert event.error_message == "too much"

    def test_status_changed_describes_both_states(self):
        event = AuditEventBuilder.status_changed(
            event_type=AuditEventType.ENTRY_FORGIVEN,
            entry_id="e1",
            actor_id="alice",
            previous_status="confirmed",
            new_status="forgiven",
        )
        assert event.details == {"previous_status": "confirmed", "new_status": "forgiven"}
        assert "confirmed" in event.description


class TestEnums:
    """Tests for enum values used on the wire."""

    def test_status_values(self):
        assert [s.value for s in EntryStatus] == [
            "pending",
            "confirmed",
            "partially_fulfilled",
            "fulfilled",
            "forgiven",
            "charity",
        ]

    def test_direction_values(self):
        assert Direction.I_OWE.value == "i_owe"
        assert Direction.OWED_TO_ME.value == "owed_to_me"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
