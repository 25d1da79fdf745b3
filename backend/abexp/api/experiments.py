"""Experiment endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from abexp.database import get_db
from abexp.domain.values import DeviceId
from abexp.middleware.auth import require_auth_token
from abexp.schemas.experiment import (
    ApiResponse,
    CreateExperimentBody,
    DeviceExperimentData,
    DeviceExperimentsData,
    ExperimentData,
    ExperimentIdData,
    ExperimentsData,
    PatchExperimentBody,
)
from abexp.services.experiments import ExperimentService
from abexp.services.repository import SqlExperimentRepository

router = APIRouter()


def get_experiment_service(db: Session = Depends(get_db)) -> ExperimentService:
    """Dependency building the service on the request's session."""
    return ExperimentService(SqlExperimentRepository(db))


@router.post(
    "/experiments",
    status_code=201,
    response_model=ApiResponse[ExperimentIdData],
)
async def create_experiment(
    body: CreateExperimentBody,
    service: ExperimentService = Depends(get_experiment_service)
):
    """
    Create an experiment.

    Variants are bucketed in the order given, so the order is stored as is.
    Returns 422 on invalid variants and 409 if the name is taken.
    """
    experiment_id = service.create_experiment(body.to_domain())
    return ApiResponse[ExperimentIdData](data=ExperimentIdData(id=experiment_id))


@router.get("/experiments")
async def get_experiments(
    device_id: Optional[str] = Header(None, alias="x-device-id"),
    service: ExperimentService = Depends(get_experiment_service)
):
    """
    List experiments.

    - Without X-Device-Id: every experiment with its variants
    - With X-Device-Id: the active experiments the device takes part in and
      the variant assigned to it. Registers the device on first contact.
    """
    if device_id is not None:
        experiments = service.get_all_device_participating_experiments(
            DeviceId.parse(device_id)
        )
        return ApiResponse[DeviceExperimentsData](
            data=DeviceExperimentsData(
                experiments=[DeviceExperimentData.from_domain(e) for e in experiments]
            )
        )

    experiments = service.get_all_experiments()
    return ApiResponse[ExperimentsData](
        data=ExperimentsData(
            experiments=[ExperimentData.from_domain(e) for e in experiments]
        )
    )


@router.patch(
    "/experiments/{experiment_id}",
    response_model=ApiResponse[ExperimentIdData],
    dependencies=[Depends(require_auth_token)],
)
async def patch_experiment(
    experiment_id: UUID,
    body: PatchExperimentBody,
    service: ExperimentService = Depends(get_experiment_service)
):
    """
    Finish an experiment. Requires the Authorization token.

    Returns 404 for an unknown id and 409 if it is already finished.
    """
    finished_id = service.finish_experiment(experiment_id)
    return ApiResponse[ExperimentIdData](data=ExperimentIdData(id=finished_id))
