"""Experimentation service for A/B testing."""
from typing import List, Sequence
from uuid import UUID

import structlog

from abexp.domain.entities import (
    CreateExperimentRequest,
    Device,
    DeviceExperiment,
    Experiment,
    StatisticsExperiment,
)
from abexp.domain.errors import ExperimentError
from abexp.domain.statistics import compute_statistics, device_experiments
from abexp.domain.values import DeviceId
from abexp.services.repository import ExperimentRepository

logger = structlog.get_logger()


class ExperimentService:
    """Service for managing A/B experiments.

    All storage goes through the repository; variant assignment and
    statistics are computed in memory from the snapshots it returns.
    Domain errors raised by the repository are logged and propagated
    unchanged.
    """

    def __init__(self, repository: ExperimentRepository):
        self.repository = repository

    def create_experiment(self, request: CreateExperimentRequest) -> UUID:
        """
        Create a new experiment.

        Args:
            request: Validated name and ordered variants

        Returns:
            Id of the created experiment

        Raises:
            DuplicateExperimentError: If an experiment with this name exists
        """
        try:
            experiment_id = self.repository.create_experiment(request)
        except ExperimentError as e:
            logger.warning(
                "experiment_create_rejected",
                name=str(request.name),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        logger.info(
            "experiment_created",
            experiment_id=str(experiment_id),
            name=str(request.name),
            variants=len(request.variants),
        )
        return experiment_id

    def get_all_experiments(self) -> List[Experiment]:
        """Get every experiment, finished ones included."""
        return self.repository.get_all_experiments()

    def get_all_device_participating_experiments(
        self,
        device_id: DeviceId,
    ) -> List[DeviceExperiment]:
        """
        Get the experiments a device takes part in, with its variants.

        The device is registered on its first request; later requests reuse
        the registration time, so eligibility never shifts retroactively.
        Finished experiments are not returned.

        Example:
            >>> service = ExperimentService(SqlExperimentRepository(db))
            >>> device_id = DeviceId.parse("550e8400-e29b-41d4-a716-446655440000")
            >>> [str(e.data) for e in service.get_all_device_participating_experiments(device_id)]
            ['green-button']
        """
        device = self.repository.get_or_create_device(device_id)
        experiments = self.repository.get_all_experiments()

        assigned = device_experiments(device, experiments)

        logger.info(
            "device_experiments_resolved",
            device_id=str(device_id),
            experiments=len(assigned),
        )
        return assigned

    def get_all_devices(self) -> List[Device]:
        """Get every registered device."""
        return self.repository.get_all_devices()

    def get_statistics(self, devices: Sequence[Device]) -> List[StatisticsExperiment]:
        """
        Compute participation statistics for all experiments.

        Args:
            devices: Device population to tabulate, usually get_all_devices()

        Returns:
            One entry per experiment, each listing all of its variants
        """
        experiments = self.repository.get_all_experiments()
        statistics = compute_statistics(experiments, devices)

        logger.info(
            "statistics_computed",
            experiments=len(statistics),
            devices=len(devices),
        )
        return statistics

    def finish_experiment(self, experiment_id: UUID) -> UUID:
        """
        Finish an experiment so it is no longer served to devices.

        Raises:
            ExperimentNotFoundError: If no experiment has this id
            ExperimentAlreadyFinishedError: If it is already finished
        """
        try:
            self.repository.finish_experiment(experiment_id)
        except ExperimentError as e:
            logger.warning(
                "experiment_finish_rejected",
                experiment_id=str(experiment_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        logger.info("experiment_finished", experiment_id=str(experiment_id))
        return experiment_id
