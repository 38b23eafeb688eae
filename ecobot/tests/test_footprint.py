"""Tests for trip footprint estimates."""

import pytest

from ecobot.chat.errors import InvalidInputError
from ecobot.footprint import emission_level, estimate_footprint


class TestEstimateFootprint:
    """Test cases for estimate_footprint."""

    def test_train(self):
        estimate = estimate_footprint("train", 500)

        assert estimate.mode == "Train"
        assert estimate.emissions_kg == 20.0
        assert estimate.level == "Low"
        assert estimate.annual_share_percent == 0.5
        assert estimate.suggestions[0].startswith("Great choice!")
        assert len(estimate.suggestions) == 4

    def test_car(self):
        estimate = estimate_footprint("car", 1000)

        assert estimate.emissions_kg == 120.0
        assert estimate.level == "Medium"
        assert estimate.annual_share_percent == 3.0

    def test_flight(self):
        estimate = estimate_footprint("flight", 1000)

        assert estimate.emissions_kg == 150.0
        assert estimate.level == "High"
        assert len(estimate.suggestions) == 6

    def test_mode_is_case_insensitive(self):
        assert estimate_footprint(" Flight ", 100).mode == "Flight"

    def test_to_dict(self):
        data = estimate_footprint("car", 100).to_dict()
        assert data["mode"] == "Car"
        assert data["emissions_kg"] == 12.0
        assert data["distance_km"] == 100

    def test_unknown_mode(self):
        with pytest.raises(InvalidInputError) as exc_info:
            estimate_footprint("bicycle", 10)
        assert exc_info.value.detail == "Unknown transport mode: bicycle"

    @pytest.mark.parametrize("distance", [0, -5, float("nan"), float("inf")])
    def test_distance_must_be_positive(self, distance):
        with pytest.raises(InvalidInputError):
            estimate_footprint("train", distance)


@pytest.mark.parametrize(
    "emissions,level",
    [(0.5, "Low"), (49.99, "Low"), (50, "Medium"), (149.99, "Medium"), (150, "High")],
)
def test_emission_level_thresholds(emissions, level):
    assert emission_level(emissions) == level
