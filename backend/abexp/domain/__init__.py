"""Experiment domain: value objects, entities, bucketing and statistics."""
from abexp.domain.values import DeviceId, ExperimentName, VariantData, VariantDistribution
from abexp.domain.variants import EPSILON, ExperimentVariants, Variant, bucket_score
from abexp.domain.entities import (
    CreateExperimentRequest,
    Device,
    DeviceExperiment,
    Experiment,
    StatisticsExperiment,
    StatisticsVariant,
)

__all__ = [
    "DeviceId",
    "ExperimentName",
    "VariantData",
    "VariantDistribution",
    "EPSILON",
    "ExperimentVariants",
    "Variant",
    "bucket_score",
    "CreateExperimentRequest",
    "Device",
    "DeviceExperiment",
    "Experiment",
    "StatisticsExperiment",
    "StatisticsVariant",
]
