"""Tests for recurring instance projection."""

from datetime import date
from decimal import Decimal

import pytest
from factories import make_exception, make_recurring

from app.services.matching import InvalidRangeError, RecurringInstanceProjector


@pytest.fixture
def projector():
    return RecurringInstanceProjector()


class TestProject:
    """Tests for RecurringInstanceProjector.project."""

    def test_monthly_instances(self, projector):
        """Test one instance per month on the scheduled day."""
        netflix = make_recurring()

        result = projector.project([netflix], date(2026, 1, 1), date(2026, 3, 31))

        assert list(result) == [date(2026, 1, 15), date(2026, 2, 15), date(2026, 3, 15)]
        instance = result[date(2026, 1, 15)][0]
        assert instance.recurring_transaction_id == netflix.id
        assert instance.expected_amount == Decimal("15.99")
        assert instance.currency == "USD"
        assert instance.description == "Netflix"
        assert not instance.is_skipped
        assert not instance.is_modified

    def test_invalid_range(self, projector):
        """Test start after end raises InvalidRangeError."""
        with pytest.raises(InvalidRangeError):
            projector.project([make_recurring()], date(2026, 2, 1), date(2026, 1, 1))

    def test_single_day_range(self, projector):
        result = projector.project([make_recurring()], date(2026, 1, 15), date(2026, 1, 15))
        assert list(result) == [date(2026, 1, 15)]

    def test_inactive_contributes_nothing(self, projector):
        result = projector.project(
            [make_recurring(is_active=False)], date(2026, 1, 1), date(2026, 12, 31)
        )
        assert result == {}

    def test_skipped_exception_removes_date(self, projector):
        recurring = make_recurring(exceptions=[make_exception(date(2026, 2, 15), "skipped")])

        result = projector.project([recurring], date(2026, 1, 1), date(2026, 3, 31))

        assert list(result) == [date(2026, 1, 15), date(2026, 3, 15)]

    def test_modified_exception_overrides_values(self, projector):
        recurring = make_recurring(
            exceptions=[
                make_exception(
                    date(2026, 2, 15),
                    "modified",
                    modified_amount="22.99",
                    modified_description="Netflix Premium",
                )
            ]
        )

        result = projector.project([recurring], date(2026, 2, 1), date(2026, 2, 28))

        instance = result[date(2026, 2, 15)][0]
        assert instance.expected_amount == Decimal("22.99")
        assert instance.description == "Netflix Premium"
        assert instance.is_modified

    def test_modified_amount_only_keeps_description(self, projector):
        recurring = make_recurring(
            exceptions=[make_exception(date(2026, 2, 15), "modified", modified_amount="17.99")]
        )

        instance = projector.project([recurring], date(2026, 2, 1), date(2026, 2, 28))[
            date(2026, 2, 15)
        ][0]

        assert instance.expected_amount == Decimal("17.99")
        assert instance.description == "Netflix"

    def test_instances_on_same_date_ordered_by_id(self, projector):
        """Test instances sharing a date are ordered by recurring id."""
        first = make_recurring(description="Rent", amount="1200.00", day_of_month=1)
        second = make_recurring(description="Gym", amount="40.00", day_of_month=1)

        result = projector.project([second, first], date(2026, 1, 1), date(2026, 1, 31))

        ids = [i.recurring_transaction_id for i in result[date(2026, 1, 1)]]
        assert ids == sorted(ids, key=str)

    def test_deterministic(self, projector):
        schedules = [
            make_recurring(),
            make_recurring(description="Spotify", amount="9.99", day_of_month=3),
            make_recurring(frequency="weekly", day_of_month=None, day_of_week=0, amount="20.00"),
        ]

        first = projector.project(schedules, date(2026, 1, 1), date(2026, 6, 30))
        second = projector.project(list(reversed(schedules)), date(2026, 1, 1), date(2026, 6, 30))

        assert first == second

    def test_range_and_uniqueness_invariants(self, projector):
        """Test every instance is in range and no schedule repeats a date."""
        schedules = [
            make_recurring(frequency="daily", day_of_month=None),
            make_recurring(day_of_month=31),
            make_recurring(frequency="biweekly", day_of_month=None, day_of_week=2),
        ]
        start, end = date(2026, 1, 10), date(2026, 5, 20)

        result = projector.project(schedules, start, end)

        assert list(result) == sorted(result)
        seen = set()
        for day, instances in result.items():
            assert start <= day <= end
            for instance in instances:
                assert instance.instance_date == day
                assert instance.key not in seen
                seen.add(instance.key)


class TestInstancesForDate:
    """Tests for RecurringInstanceProjector.instances_for_date."""

    def test_includes_skipped_flagged(self, projector):
        recurring = make_recurring(exceptions=[make_exception(date(2026, 2, 15), "skipped")])

        instances = projector.instances_for_date([recurring], date(2026, 2, 15))

        assert len(instances) == 1
        assert instances[0].is_skipped

    def test_unscheduled_day(self, projector):
        assert projector.instances_for_date([make_recurring()], date(2026, 2, 14)) == []


class TestFlatten:
    """Tests for RecurringInstanceProjector.flatten."""

    def test_date_order(self, projector):
        schedules = [make_recurring(day_of_month=20), make_recurring(day_of_month=5)]

        flat = projector.flatten(projector.project(schedules, date(2026, 1, 1), date(2026, 2, 28)))

        assert [i.instance_date for i in flat] == [
            date(2026, 1, 5),
            date(2026, 1, 20),
            date(2026, 2, 5),
            date(2026, 2, 20),
        ]
