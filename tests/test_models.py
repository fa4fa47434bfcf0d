from __future__ import annotations

import pytest

from models import CollectionConfig, DonationRequest, MONTHLY, PENDING


def test_collection_config_cannot_be_changed_in_place():
    months = {2024: [1, 2]}
    config = CollectionConfig(years=[2024], months=months)
    months[2024].append(3)

    assert config.active_months(2024) == (1, 2)
    with pytest.raises(TypeError):
        config.months[2025] = (1,)
    assert config.years == (2024,)


def test_collection_config_is_hashable_and_compares_by_value():
    a = CollectionConfig(years=(2024,), months={2024: (1, 2)})
    b = CollectionConfig(years=(2024,), months={2024: (1, 2)})
    assert a == b
    assert hash(a) == hash(b)
    assert a != a.with_month(2024, 3, True)
    assert len({a, b}) == 1


def test_donation_request_allocations_are_read_only():
    req = DonationRequest(id=1, member_id=5, member_name="Nasrin", amount=100.0, kind=MONTHLY, status=PENDING, allocations={1: 100.0})
    with pytest.raises(TypeError):
        req.allocations[2] = 50.0
    assert req.allocations == {1: 100.0}
    assert isinstance(hash(req), int)
