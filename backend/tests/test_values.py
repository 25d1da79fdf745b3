"""Tests for validated value objects."""
import dataclasses
from uuid import UUID

import pytest

from abexp.domain.errors import (
    DeviceIdError,
    ExperimentNameEmptyError,
    ValidationError,
    VariantDataEmptyError,
    VariantDistributionInvalidError,
)
from abexp.domain.values import DeviceId, ExperimentName, VariantData, VariantDistribution


def test_experiment_name_is_trimmed():
    """Test that surrounding whitespace is removed from names."""
    assert str(ExperimentName("  price  ")) == "price"
    assert ExperimentName(" price") == ExperimentName("price")


@pytest.mark.parametrize("raw_name", ["", "   ", "\t\n"])
def test_experiment_name_cannot_be_empty(raw_name):
    """Test that empty and whitespace-only names are rejected."""
    with pytest.raises(ExperimentNameEmptyError):
        ExperimentName(raw_name)


def test_variant_distribution_accepts_range():
    """Test the accepted distribution range (0, 100]."""
    assert VariantDistribution(75.0).value == 75.0
    assert VariantDistribution(100.0).value == 100.0
    assert VariantDistribution(0.001).value == 0.001


@pytest.mark.parametrize("value", [0.0, -1.0, 100.01, float("nan")])
def test_variant_distribution_rejects_out_of_range(value):
    """Test that zero, negative, >100 and NaN distributions are rejected."""
    with pytest.raises(VariantDistributionInvalidError):
        VariantDistribution(value)


def test_variant_data_cannot_be_empty():
    """Test that variant data must be non-empty."""
    assert str(VariantData("https://example.com/v1")) == "https://example.com/v1"

    with pytest.raises(VariantDataEmptyError):
        VariantData("")


def test_device_id_parses_uuid():
    """Test that a valid IDFA is accepted."""
    raw_id = "550e8400-e29b-41d4-a716-446655440000"
    device_id = DeviceId.parse(raw_id)

    assert device_id.value == UUID(raw_id)
    assert str(device_id) == raw_id


def test_device_id_text_is_canonical():
    """Test that upper-case input is rendered as lower-case hyphenated text."""
    device_id = DeviceId.parse("550E8400-E29B-41D4-A716-446655440000")

    assert str(device_id) == "550e8400-e29b-41d4-a716-446655440000"


@pytest.mark.parametrize(
    "raw_id",
    ["00000000-0000-0000-0000-000000000000", "abracadabra", ""],
)
def test_device_id_rejects_invalid(raw_id):
    """Test that the nil UUID and non-UUID strings are rejected."""
    with pytest.raises(DeviceIdError) as exc_info:
        DeviceId.parse(raw_id)

    assert exc_info.value.raw_id == raw_id


def test_device_id_rejects_nil_uuid_object():
    """Test that the nil UUID cannot be wrapped directly either."""
    with pytest.raises(DeviceIdError):
        DeviceId(UUID(int=0))


def test_validation_errors_share_a_category():
    """Test that every value error is a ValidationError."""
    for error_type in (
        ExperimentNameEmptyError,
        VariantDistributionInvalidError,
        VariantDataEmptyError,
        DeviceIdError,
    ):
        assert issubclass(error_type, ValidationError)


def test_value_objects_are_immutable():
    """Test that value objects cannot be changed after construction."""
    name = ExperimentName("price")

    with pytest.raises(dataclasses.FrozenInstanceError):
        name.value = ""
