"""Statistics endpoint."""
from fastapi import APIRouter, Depends

from abexp.api.experiments import get_experiment_service
from abexp.schemas.experiment import ApiResponse, StatisticsData, StatisticsExperimentData
from abexp.services.experiments import ExperimentService

router = APIRouter()


@router.get("/statistics", response_model=ApiResponse[StatisticsData])
async def get_statistics(service: ExperimentService = Depends(get_experiment_service)):
    """
    Participation statistics of every experiment, finished ones included.

    For each variant: number and percentage of participating devices
    assigned to it.
    """
    devices = service.get_all_devices()
    statistics = service.get_statistics(devices)

    return ApiResponse[StatisticsData](
        data=StatisticsData(
            experiments=[StatisticsExperimentData.from_domain(s) for s in statistics]
        )
    )
