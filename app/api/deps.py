from typing import Annotated

from fastapi import Depends, Request

from app.coordinator import Coordinator

def get_coordinator(request: Request) -> Coordinator:
    return request.app.state.coordinator

# Dependency for the process-wide coordinator
CoordinatorDep = Annotated[Coordinator, Depends(get_coordinator)]
