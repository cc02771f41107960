"""
Sequence generator tests.

Verifies:
- First allocation of an unseen name starts at 1
- Values strictly increase per name and names are independent
- Blank names are rejected without creating a counter
"""

import pytest

from laundry.errors import ValidationError
from laundry.models import Sequence
from laundry.services import sequence_service


class TestNextValue:

    def test_first_value_is_one(self, db_session):
        assert sequence_service.next_value("order_code") == 1
        assert sequence_service.current_value("order_code") == 1

    def test_values_increase_by_one(self, db_session):
        values = [sequence_service.next_value("order_code") for _ in range(5)]
        assert values == [1, 2, 3, 4, 5]

    def test_names_are_independent(self, db_session):
        sequence_service.next_value("order_code")
        sequence_service.next_value("order_code")

        assert sequence_service.next_value("customer_code") == 1
        assert sequence_service.next_value("order_code") == 3

    def test_continues_from_existing_row(self, db_session):
        db_session.add(Sequence(name="order_code", value=41))
        db_session.commit()

        assert sequence_service.next_value("order_code") == 42

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_rejected(self, db_session, name):
        with pytest.raises(ValidationError):
            sequence_service.next_value(name)
        assert db_session.query(Sequence).count() == 0


class TestInspection:

    def test_current_value_of_unseen_name_is_zero(self, db_session):
        assert sequence_service.current_value("never_used") == 0

    def test_list_sequences_sorted_by_name(self, db_session):
        sequence_service.next_value("order_code")
        sequence_service.next_value("customer_code")

        names = [seq.name for seq in sequence_service.list_sequences()]
        assert names == ["customer_code", "order_code"]
