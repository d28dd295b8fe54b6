from typing import Any, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.deps import CoordinatorDep
from runner_sdk.states import RunnerState

router = APIRouter()

class RunnerDTO(BaseModel):
    job_id: Any
    state: RunnerState
    time_left: Optional[float] = None

@router.get("", response_model=List[RunnerDTO])
async def list_runners(coordinator: CoordinatorDep):
    return [
        RunnerDTO(job_id=runner.job.id, state=runner.state, time_left=runner.time_left())
        for runner in coordinator.runners
    ]
