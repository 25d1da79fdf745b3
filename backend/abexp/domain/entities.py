"""Experiment and device records."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple
from uuid import UUID

from abexp.domain.values import DeviceId, ExperimentName, VariantData
from abexp.domain.variants import ExperimentVariants


@dataclass(frozen=True)
class Experiment:
    id: UUID
    name: ExperimentName
    variants: ExperimentVariants
    created_at: datetime
    finished_at: Optional[datetime] = None

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None


@dataclass(frozen=True)
class Device:
    id: DeviceId
    created_at: datetime


@dataclass(frozen=True)
class CreateExperimentRequest:
    """Data required to create an Experiment."""

    name: ExperimentName
    variants: ExperimentVariants


@dataclass(frozen=True)
class DeviceExperiment:
    """An experiment as seen by one device: the variant it is assigned."""

    id: UUID
    name: ExperimentName
    data: VariantData


@dataclass(frozen=True)
class StatisticsVariant:
    data: VariantData
    total_devices: int
    percentage_devices: float


@dataclass(frozen=True)
class StatisticsExperiment:
    id: UUID
    name: ExperimentName
    total_devices: int
    variants: Tuple[StatisticsVariant, ...]
