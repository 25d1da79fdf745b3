"""Experiment request/response schemas."""
from datetime import datetime
from typing import Generic, List, Literal, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from abexp.domain.entities import (
    CreateExperimentRequest,
    DeviceExperiment,
    Experiment,
    StatisticsExperiment,
)
from abexp.domain.values import ExperimentName, VariantData, VariantDistribution
from abexp.domain.variants import ExperimentVariants, Variant

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope of every successful response."""

    data: T


class ErrorData(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Envelope of every error response."""

    data: ErrorData

    @classmethod
    def with_message(cls, message: str) -> "ErrorResponse":
        return cls(data=ErrorData(message=message))


class VariantBody(BaseModel):
    """Variant weight (percent) and payload."""

    distribution: float
    data: str


class CreateExperimentBody(BaseModel):
    """Request to create an experiment."""

    name: str
    variants: List[VariantBody] = Field(..., description="Variants in bucketing order")

    def to_domain(self) -> CreateExperimentRequest:
        """
        Validate the body into a domain request.

        Raises:
            ValidationError: On an empty name or data, a distribution outside
                (0, 100], or distributions not summing to 100
        """
        name = ExperimentName(self.name)
        variants = ExperimentVariants(
            Variant(
                distribution=VariantDistribution(v.distribution),
                data=VariantData(v.data),
            )
            for v in self.variants
        )
        return CreateExperimentRequest(name=name, variants=variants)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "button_color",
                "variants": [
                    {"distribution": 33.3, "data": "#FF0000"},
                    {"distribution": 33.3, "data": "#00FF00"},
                    {"distribution": 33.3, "data": "#0000FF"}
                ]
            }
        }


class PatchExperimentBody(BaseModel):
    """Request to change an experiment's status. Only finishing is supported."""

    status: Literal["finished"]

    class Config:
        json_schema_extra = {"example": {"status": "finished"}}


class ExperimentIdData(BaseModel):
    id: UUID


class ExperimentVariantData(BaseModel):
    distribution: float
    data: str


class ExperimentData(BaseModel):
    id: UUID
    name: str
    variants: List[ExperimentVariantData]
    created_at: datetime
    finished_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, experiment: Experiment) -> "ExperimentData":
        return cls(
            id=experiment.id,
            name=str(experiment.name),
            variants=[
                ExperimentVariantData(
                    distribution=variant.distribution.value,
                    data=str(variant.data),
                )
                for variant in experiment.variants
            ],
            created_at=experiment.created_at,
            finished_at=experiment.finished_at,
        )

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ExperimentsData(BaseModel):
    experiments: List[ExperimentData]


class DeviceExperimentData(BaseModel):
    id: UUID
    name: str
    data: str

    @classmethod
    def from_domain(cls, experiment: DeviceExperiment) -> "DeviceExperimentData":
        return cls(id=experiment.id, name=str(experiment.name), data=str(experiment.data))


class DeviceExperimentsData(BaseModel):
    experiments: List[DeviceExperimentData]


class StatisticsVariantData(BaseModel):
    data: str
    total_devices: int
    percentage_devices: float

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class StatisticsExperimentData(BaseModel):
    id: UUID
    name: str
    total_devices: int
    variants: List[StatisticsVariantData]

    @classmethod
    def from_domain(cls, experiment: StatisticsExperiment) -> "StatisticsExperimentData":
        return cls(
            id=experiment.id,
            name=str(experiment.name),
            total_devices=experiment.total_devices,
            variants=[
                StatisticsVariantData(
                    data=str(variant.data),
                    total_devices=variant.total_devices,
                    percentage_devices=variant.percentage_devices,
                )
                for variant in experiment.variants
            ],
        )

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class StatisticsData(BaseModel):
    experiments: List[StatisticsExperimentData]
