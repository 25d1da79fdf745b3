"""Validated value objects.

Each class checks its invariant in ``__post_init__`` so an invalid instance
can never be constructed.
"""
from dataclasses import dataclass
from uuid import UUID

from abexp.domain.errors import (
    DeviceIdError,
    ExperimentNameEmptyError,
    VariantDataEmptyError,
    VariantDistributionInvalidError,
)


@dataclass(frozen=True)
class ExperimentName:
    """Experiment name, stored trimmed."""

    value: str

    def __post_init__(self):
        trimmed = self.value.strip()
        if not trimmed:
            raise ExperimentNameEmptyError()
        object.__setattr__(self, "value", trimmed)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class VariantDistribution:
    """Share of traffic for a variant, in percent: 0 < value <= 100."""

    value: float

    def __post_init__(self):
        # NaN fails both comparisons, so test the accepted range instead
        if not (0.0 < self.value <= 100.0):
            raise VariantDistributionInvalidError(self.value)
        object.__setattr__(self, "value", float(self.value))

    def __float__(self) -> float:
        return self.value


@dataclass(frozen=True)
class VariantData:
    """Opaque payload returned to devices (a label, URL, price...)."""

    value: str

    def __post_init__(self):
        if not self.value:
            raise VariantDataEmptyError()

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DeviceId:
    """Device identifier (IDFA): any UUID except the nil UUID."""

    value: UUID

    def __post_init__(self):
        if self.value.int == 0:
            raise DeviceIdError(str(self.value))

    @classmethod
    def parse(cls, raw_id: str) -> "DeviceId":
        """Build a DeviceId from its text form."""
        try:
            uuid = UUID(raw_id)
        except (ValueError, TypeError, AttributeError):
            raise DeviceIdError(str(raw_id))

        if uuid.int == 0:
            raise DeviceIdError(raw_id)
        return cls(uuid)

    def __str__(self) -> str:
        return str(self.value)
