"""Experiment storage.

``ExperimentRepository`` is the port the experiment service depends on;
``SqlExperimentRepository`` implements it on a SQLAlchemy session.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from abexp.domain.entities import CreateExperimentRequest, Device, Experiment
from abexp.domain.errors import (
    DeviceNotFoundError,
    DuplicateDeviceError,
    DuplicateExperimentError,
    ExperimentAlreadyFinishedError,
    ExperimentNotFoundError,
    UnknownError,
    ValidationError,
)
from abexp.domain.values import DeviceId, ExperimentName, VariantData, VariantDistribution
from abexp.domain.variants import ExperimentVariants, Variant
from abexp.models import DeviceRecord, ExperimentRecord, ExperimentVariantRecord


class ExperimentRepository(ABC):
    """Store of experiment and device data."""

    @abstractmethod
    def create_experiment(self, request: CreateExperimentRequest) -> UUID:
        """
        Persist a new experiment with its variants.

        Raises:
            DuplicateExperimentError: If the name is already taken
        """

    @abstractmethod
    def get_all_experiments(self) -> List[Experiment]:
        """All experiments, oldest first, variants in stored order."""

    @abstractmethod
    def get_all_devices(self) -> List[Device]:
        """All known devices, oldest first."""

    @abstractmethod
    def get_or_create_device(self, device_id: DeviceId) -> Device:
        """
        Return the device, registering it first if it is unknown.

        Only the first registration sets ``created_at``.
        """

    @abstractmethod
    def finish_experiment(self, experiment_id: UUID) -> UUID:
        """
        Mark an experiment as finished, at most once.

        Raises:
            ExperimentNotFoundError: If no experiment has this id
            ExperimentAlreadyFinishedError: If it was finished before
        """


def as_utc(value: datetime) -> datetime:
    """Attach UTC to timestamps read back from backends that drop the zone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlExperimentRepository(ExperimentRepository):
    """SQLAlchemy implementation of the experiment store."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _storage_errors(self, action: str):
        """Roll back and wrap any database failure in UnknownError."""
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            raise UnknownError(f"failed to {action}") from e

    def create_experiment(self, request: CreateExperimentRequest) -> UUID:
        record = ExperimentRecord(
            name=str(request.name),
            created_at=datetime.now(timezone.utc),
        )
        for position, variant in enumerate(request.variants):
            record.variants.append(
                ExperimentVariantRecord(
                    position=position,
                    data=str(variant.data),
                    distribution=variant.distribution.value,
                )
            )

        with self._storage_errors(f"save experiment with name {request.name}"):
            try:
                self.db.add(record)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if self._experiment_name_exists(str(request.name)):
                    raise DuplicateExperimentError(request.name)
                raise

            return record.id

    def _experiment_name_exists(self, name: str) -> bool:
        return self.db.scalar(
            select(ExperimentRecord.id).where(ExperimentRecord.name == name)
        ) is not None

    def get_all_experiments(self) -> List[Experiment]:
        with self._storage_errors("fetch experiments"):
            records = self.db.scalars(
                select(ExperimentRecord)
                .options(selectinload(ExperimentRecord.variants))
                .order_by(ExperimentRecord.created_at.asc(), ExperimentRecord.name.asc())
            ).all()

        return [self._to_experiment(record) for record in records]

    @staticmethod
    def _to_experiment(record: ExperimentRecord) -> Experiment:
        """Rebuild a validated Experiment from its stored rows."""
        try:
            variants = ExperimentVariants(
                Variant(
                    distribution=VariantDistribution(row.distribution),
                    data=VariantData(row.data),
                )
                for row in record.variants
            )
            name = ExperimentName(record.name)
        except ValidationError as e:
            raise UnknownError(f"invalid stored experiment {record.id}") from e

        return Experiment(
            id=record.id,
            name=name,
            variants=variants,
            created_at=as_utc(record.created_at),
            finished_at=as_utc(record.finished_at) if record.finished_at else None,
        )

    def get_all_devices(self) -> List[Device]:
        with self._storage_errors("fetch devices"):
            records = self.db.scalars(
                select(DeviceRecord).order_by(DeviceRecord.created_at.asc())
            ).all()

        devices = []
        for record in records:
            try:
                device_id = DeviceId(record.id)
            except ValidationError as e:
                raise UnknownError(f"invalid stored device {record.id}") from e
            devices.append(Device(id=device_id, created_at=as_utc(record.created_at)))
        return devices

    def create_device(self, device_id: DeviceId) -> Device:
        """
        Register a device seen for the first time.

        Raises:
            DuplicateDeviceError: If the device is already registered
        """
        record = DeviceRecord(id=device_id.value, created_at=datetime.now(timezone.utc))

        with self._storage_errors(f"save device with id {device_id}"):
            try:
                self.db.add(record)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise DuplicateDeviceError(device_id)

            return Device(id=device_id, created_at=as_utc(record.created_at))

    def get_device_by_id(self, device_id: DeviceId) -> Device:
        """
        Raises:
            DeviceNotFoundError: If the device was never registered
        """
        with self._storage_errors(f"get device with id {device_id}"):
            record = self.db.get(DeviceRecord, device_id.value)

        if record is None:
            raise DeviceNotFoundError(device_id)
        return Device(id=device_id, created_at=as_utc(record.created_at))

    def get_or_create_device(self, device_id: DeviceId) -> Device:
        try:
            return self.get_device_by_id(device_id)
        except DeviceNotFoundError:
            pass

        try:
            return self.create_device(device_id)
        except DuplicateDeviceError:
            # Registered by a concurrent request in the meantime
            return self.get_device_by_id(device_id)

    def finish_experiment(self, experiment_id: UUID) -> UUID:
        # Conditional update: of concurrent finish requests only one matches
        statement = (
            update(ExperimentRecord)
            .where(
                ExperimentRecord.id == experiment_id,
                ExperimentRecord.finished_at.is_(None),
            )
            .values(finished_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )

        with self._storage_errors(f"finish experiment with id {experiment_id}"):
            result = self.db.execute(statement)
            self.db.commit()

            if result.rowcount == 1:
                return experiment_id

            exists = self.db.scalar(
                select(ExperimentRecord.id).where(ExperimentRecord.id == experiment_id)
            )

        if exists is None:
            raise ExperimentNotFoundError(experiment_id)
        raise ExperimentAlreadyFinishedError(experiment_id)
