from __future__ import annotations

import pytest

from models.search import SearchCriteria
from utils.errors import ValidationError
from utils.validation import validate_model


@pytest.mark.parametrize(
    "params",
    [
        {"latitude": 10.0},
        {"longitude": 20.0},
        {"max_distance_m": 1000},
        {"latitude": 91.0, "longitude": 0.0},
        {"latitude": 0.0, "longitude": -180.5},
        {"latitude": 0.0, "longitude": 0.0, "max_distance_m": -1},
        {"page": 0},
        {"page_size": 0},
        {"company_uuid": ""},
        {"radius": 5},
    ],
)
def test_invalid_criteria_are_rejected(params):
    with pytest.raises(ValidationError):
        validate_model(SearchCriteria, params)


def test_defaults_without_origin():
    criteria = validate_model(SearchCriteria, {})
    assert criteria.origin is None
    assert criteria.radius_m is None
    assert criteria.page == 1


def test_zero_radius_means_unbounded():
    criteria = validate_model(SearchCriteria, {"latitude": 1.0, "longitude": 2.0, "max_distance_m": 0})
    assert criteria.origin.lat == 1.0
    assert criteria.origin.lng == 2.0
    assert criteria.radius_m is None


def test_error_message_names_the_field():
    with pytest.raises(ValidationError) as info:
        validate_model(SearchCriteria, {"page": 0})
    assert "page" in str(info.value)
