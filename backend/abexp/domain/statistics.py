"""Participation rules and statistics aggregation.

Statistics replay ``ExperimentVariants.assign_variant`` over the device
population, so the variant counted for a device is exactly the variant
that device is served.
"""
from collections import Counter
from typing import Iterable, List, Sequence

from abexp.domain.entities import (
    Device,
    DeviceExperiment,
    Experiment,
    StatisticsExperiment,
    StatisticsVariant,
)


def is_visible_to_device(experiment: Experiment, device: Device) -> bool:
    """
    Check whether a device is served an experiment.

    The experiment must have started at or before the device was first seen
    and must not be finished.
    """
    if experiment.is_finished:
        return False
    return experiment.created_at <= device.created_at


def is_statistics_participant(device: Device, experiment: Experiment) -> bool:
    """Check whether a device is counted in an experiment's statistics."""
    return device.created_at >= experiment.created_at


def device_experiments(
    device: Device,
    experiments: Iterable[Experiment],
) -> List[DeviceExperiment]:
    """Assign a variant of every experiment visible to the device."""
    identity = str(device.id)

    return [
        DeviceExperiment(
            id=experiment.id,
            name=experiment.name,
            data=experiment.variants.assign_variant(identity),
        )
        for experiment in experiments
        if is_visible_to_device(experiment, device)
    ]


def experiment_statistics(
    experiment: Experiment,
    devices: Sequence[Device],
) -> StatisticsExperiment:
    """
    Tabulate how an experiment's participants are spread over its variants.

    Every variant is reported, including variants with no devices. With no
    participants at all, each variant reports 0.0 percent.
    """
    participants = [d for d in devices if is_statistics_participant(d, experiment)]
    total = len(participants)

    counts = Counter(
        experiment.variants.assign_variant(str(device.id))
        for device in participants
    )

    variants = []
    for variant in experiment.variants:
        matched = counts.get(variant.data, 0)
        percentage = (matched / total) * 100.0 if total else 0.0
        variants.append(
            StatisticsVariant(
                data=variant.data,
                total_devices=matched,
                percentage_devices=percentage,
            )
        )

    return StatisticsExperiment(
        id=experiment.id,
        name=experiment.name,
        total_devices=total,
        variants=tuple(variants),
    )


def compute_statistics(
    experiments: Iterable[Experiment],
    devices: Iterable[Device],
) -> List[StatisticsExperiment]:
    """Statistics for every experiment, finished or not, in the given order."""
    devices = list(devices)
    return [experiment_statistics(experiment, devices) for experiment in experiments]
