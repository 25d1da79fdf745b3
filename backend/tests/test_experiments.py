"""Tests for experimentation service."""
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import Text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from abexp.database import SessionLocal
from abexp.domain.entities import CreateExperimentRequest
from abexp.domain.errors import (
    DeviceNotFoundError,
    DuplicateDeviceError,
    DuplicateExperimentError,
    ExperimentAlreadyFinishedError,
    ExperimentNotFoundError,
    NotFoundError,
    UnknownError,
)
from abexp.domain.values import DeviceId, ExperimentName, VariantData, VariantDistribution
from abexp.domain.variants import ExperimentVariants, Variant
from abexp.models import DeviceRecord, ExperimentRecord, ExperimentVariantRecord
from abexp.services.experiments import ExperimentService
from abexp.services.repository import ExperimentRepository, SqlExperimentRepository


def make_request(name, *pairs):
    return CreateExperimentRequest(
        name=ExperimentName(name),
        variants=ExperimentVariants(
            Variant(VariantDistribution(d), VariantData(data)) for d, data in pairs
        ),
    )


def backdate_device(db: Session, device_id: DeviceId, delta: timedelta):
    """Move a device's registration time back by delta."""
    record = db.get(DeviceRecord, device_id.value)
    record.created_at = record.created_at - delta
    db.commit()


def test_create_and_list_experiment(service: ExperimentService):
    """Test that a created experiment is listed with its variants in order."""
    experiment_id = service.create_experiment(
        make_request("price", (75.0, "10"), (10.0, "20"), (5.0, "50"), (10.0, "5"))
    )

    experiments = service.get_all_experiments()

    assert len(experiments) == 1
    experiment = experiments[0]
    assert experiment.id == experiment_id
    assert str(experiment.name) == "price"
    assert [str(v.data) for v in experiment.variants] == ["10", "20", "50", "5"]
    assert [v.distribution.value for v in experiment.variants] == [75.0, 10.0, 5.0, 10.0]
    assert experiment.finished_at is None
    assert experiment.created_at.tzinfo is not None


def test_variant_order_survives_storage(service: ExperimentService):
    """Test that variants come back in insertion order, not sorted."""
    service.create_experiment(make_request("order", (33.3, "zebra"), (33.3, "alpha"), (33.4, "middle")))

    (experiment,) = service.get_all_experiments()

    assert [str(v.data) for v in experiment.variants] == ["zebra", "alpha", "middle"]


def test_duplicate_experiment_name_is_rejected(service: ExperimentService):
    """Test that experiment names are unique."""
    service.create_experiment(make_request("price", (100.0, "10")))

    with pytest.raises(DuplicateExperimentError):
        service.create_experiment(make_request("price", (50.0, "a"), (50.0, "b")))

    assert len(service.get_all_experiments()) == 1


def test_finish_experiment(service: ExperimentService):
    """Test that finishing sets finished_at."""
    experiment_id = service.create_experiment(make_request("price", (100.0, "10")))

    assert service.finish_experiment(experiment_id) == experiment_id

    (experiment,) = service.get_all_experiments()
    assert experiment.finished_at is not None
    assert experiment.finished_at >= experiment.created_at


def test_finish_twice_is_a_conflict(service: ExperimentService):
    """Test that finishing is not idempotent."""
    experiment_id = service.create_experiment(make_request("price", (100.0, "10")))
    service.finish_experiment(experiment_id)

    (before,) = service.get_all_experiments()
    with pytest.raises(ExperimentAlreadyFinishedError):
        service.finish_experiment(experiment_id)
    (after,) = service.get_all_experiments()

    assert after.finished_at == before.finished_at, "finished_at must be set only once"


def test_finish_unknown_experiment(service: ExperimentService):
    """Test that finishing an unknown id is a not-found error."""
    with pytest.raises(ExperimentNotFoundError):
        service.finish_experiment(uuid.uuid4())


def test_device_is_registered_once(db: Session, service: ExperimentService):
    """Test that only the first request fixes the device's created_at."""
    device_id = DeviceId(uuid.uuid4())

    service.get_all_device_participating_experiments(device_id)
    (first,) = service.get_all_devices()

    service.get_all_device_participating_experiments(device_id)
    (second,) = service.get_all_devices()

    assert first.id == second.id == device_id
    assert first.created_at == second.created_at
    assert db.query(DeviceRecord).count() == 1


def test_new_device_gets_existing_experiments(service: ExperimentService):
    """Test that a device joins experiments created before its first request."""
    experiment_id = service.create_experiment(
        make_request("price", (75.0, "10"), (10.0, "20"), (5.0, "50"), (10.0, "5"))
    )
    device_id = DeviceId(uuid.uuid4())

    (device_experiment,) = service.get_all_device_participating_experiments(device_id)

    (experiment,) = service.get_all_experiments()
    assert device_experiment.id == experiment_id
    assert device_experiment.data == experiment.variants.assign_variant(str(device_id))


def test_device_does_not_join_later_experiments(db: Session, service: ExperimentService):
    """Test that experiments created after the device was first seen are hidden."""
    device_id = DeviceId(uuid.uuid4())
    service.get_all_device_participating_experiments(device_id)
    backdate_device(db, device_id, timedelta(days=1))

    service.create_experiment(make_request("price", (100.0, "10")))

    assert service.get_all_device_participating_experiments(device_id) == []


def test_device_does_not_see_finished_experiments(service: ExperimentService):
    """Test that finished experiments are not served to devices."""
    experiment_id = service.create_experiment(make_request("price", (100.0, "10")))
    service.create_experiment(make_request("color", (100.0, "red")))
    service.finish_experiment(experiment_id)

    result = service.get_all_device_participating_experiments(DeviceId(uuid.uuid4()))

    assert [str(e.name) for e in result] == ["color"]


def test_assignment_is_stable_across_requests(service: ExperimentService):
    """Test that a device gets the same variant on every request."""
    service.create_experiment(make_request("color", (33.3, "red"), (33.3, "green"), (33.3, "blue")))
    device_id = DeviceId(uuid.uuid4())

    first = service.get_all_device_participating_experiments(device_id)
    second = service.get_all_device_participating_experiments(device_id)

    assert first == second


def test_statistics_match_served_variants(db: Session, service: ExperimentService):
    """Test that statistics count each device under the variant it was served."""
    service.create_experiment(make_request("color", (50.0, "red"), (50.0, "blue")))

    served = {"red": 0, "blue": 0}
    for _ in range(20):
        (assigned,) = service.get_all_device_participating_experiments(DeviceId(uuid.uuid4()))
        served[str(assigned.data)] += 1

    (stats,) = service.get_statistics(service.get_all_devices())

    assert stats.total_devices == 20
    assert {str(v.data): v.total_devices for v in stats.variants} == served


def test_statistics_include_finished_experiments(service: ExperimentService):
    """Test that finished experiments keep their statistics."""
    experiment_id = service.create_experiment(make_request("price", (100.0, "10")))
    service.get_all_device_participating_experiments(DeviceId(uuid.uuid4()))
    service.finish_experiment(experiment_id)

    (stats,) = service.get_statistics(service.get_all_devices())

    assert stats.id == experiment_id
    assert stats.total_devices == 1
    assert stats.variants[0].percentage_devices == 100.0


def test_statistics_without_devices(service: ExperimentService):
    """Test that an experiment with no participants reports zeros."""
    service.create_experiment(make_request("price", (60.0, "a"), (40.0, "b")))

    (stats,) = service.get_statistics([])

    assert stats.total_devices == 0
    assert [v.percentage_devices for v in stats.variants] == [0.0, 0.0]


def test_long_experiment_name_is_stored_whole(service: ExperimentService):
    """Test that names are not limited to a fixed column width."""
    assert isinstance(ExperimentRecord.__table__.c.name.type, Text)
    name = "checkout-" + "x" * 300

    service.create_experiment(make_request(name, (100.0, "10")))

    (experiment,) = service.get_all_experiments()
    assert str(experiment.name) == name


def test_second_device_registration_is_a_duplicate(db: Session):
    """Test that inserting a known device id raises DuplicateDeviceError."""
    device_id = DeviceId(uuid.uuid4())
    with SessionLocal() as other:
        SqlExperimentRepository(other).create_device(device_id)

    with pytest.raises(DuplicateDeviceError):
        SqlExperimentRepository(db).create_device(device_id)

    assert db.query(DeviceRecord).count() == 1


def test_concurrent_first_requests_share_one_registration(db: Session):
    """Test that a device registered between lookup and insert is re-read."""
    device_id = DeviceId(uuid.uuid4())
    with SessionLocal() as other:
        first = SqlExperimentRepository(other).create_device(device_id)

    repository = SqlExperimentRepository(db)
    lookup = repository.get_device_by_id
    lookups = []

    def missing_on_first_lookup(requested):
        lookups.append(requested)
        if len(lookups) == 1:
            raise DeviceNotFoundError(requested)
        return lookup(requested)

    with patch.object(repository, "get_device_by_id", side_effect=missing_on_first_lookup):
        device = repository.get_or_create_device(device_id)

    assert len(lookups) == 2
    assert device.id == device_id
    assert device.created_at == first.created_at
    assert db.query(DeviceRecord).count() == 1


def test_corrupt_stored_variants_surface_as_unknown_error(db: Session, service: ExperimentService):
    """Test that rows violating the invariants are not turned into experiments."""
    record = ExperimentRecord(name="broken", created_at=datetime.now(timezone.utc))
    record.variants.append(ExperimentVariantRecord(position=0, data="a", distribution=20.0))
    db.add(record)
    db.commit()

    with pytest.raises(UnknownError):
        service.get_all_experiments()


def test_storage_failure_is_wrapped():
    """Test that database errors reach the caller as UnknownError."""
    session = MagicMock()
    session.scalars.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))
    service = ExperimentService(SqlExperimentRepository(session))

    with pytest.raises(UnknownError) as exc_info:
        service.get_all_experiments()

    assert isinstance(exc_info.value.__cause__, OperationalError)
    session.rollback.assert_called_once()


def test_service_propagates_repository_errors():
    """Test that the service passes domain errors through unchanged."""
    repository = MagicMock(spec=ExperimentRepository)
    error = ExperimentNotFoundError(uuid.uuid4())
    repository.finish_experiment.side_effect = error
    service = ExperimentService(repository)

    with pytest.raises(NotFoundError) as exc_info:
        service.finish_experiment(error.experiment_id)

    assert exc_info.value is error


@pytest.fixture
def service(db: Session) -> ExperimentService:
    """Experiment service backed by the test database."""
    return ExperimentService(SqlExperimentRepository(db))
