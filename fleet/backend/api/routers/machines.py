# fleet/backend/api/routers/machines.py

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from fleet.backend.api.deps import get_current_claims, get_machine_service
from fleet.backend.db.models import MachineStatus
from fleet.backend.schemas.machines import CreateMachineRequest, MachineDto, UpdateMachineRequest
from fleet.backend.services.machine_service import MachineService

logger = logging.getLogger(__name__)

# every machine endpoint needs a valid token
router = APIRouter(dependencies=[Depends(get_current_claims)])


def _not_found(machine_id: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Machine with ID {machine_id} not found")


# static paths go before /{machine_id}

@router.get("/by-name/{name}", response_model=MachineDto)
def get_machine_by_name(
    name: str,
    svc: MachineService = Depends(get_machine_service),
) -> MachineDto:
    machine = svc.get_by_name(name)
    if machine is None:
        logger.warning("Machine with name %r not found", name)
        raise HTTPException(status_code=404, detail=f"Machine with name '{name}' not found")
    return machine


@router.get("/by-status/{status}", response_model=List[MachineDto])
def get_machines_by_status(
    status: MachineStatus,
    svc: MachineService = Depends(get_machine_service),
) -> list[MachineDto]:
    return svc.get_by_status(status)


@router.get("/by-location", response_model=List[MachineDto])
def get_machines_by_location(
    country: str = Query(..., min_length=1),
    city: str | None = Query(None),
    svc: MachineService = Depends(get_machine_service),
) -> list[MachineDto]:
    return svc.get_by_location(country, city)


@router.get("", response_model=List[MachineDto])
def list_machines(svc: MachineService = Depends(get_machine_service)) -> list[MachineDto]:
    """
    All machines ordered by name, tubes ordered by tube index.
    """
    return svc.list_machines()


@router.get("/{machine_id}", response_model=MachineDto)
def get_machine(
    machine_id: int,
    svc: MachineService = Depends(get_machine_service),
) -> MachineDto:
    machine = svc.get_by_id(machine_id)
    if machine is None:
        logger.warning("Machine with ID %s not found", machine_id)
        raise _not_found(machine_id)
    return machine


@router.post("", response_model=MachineDto, status_code=201)
def create_machine(
    body: CreateMachineRequest,
    svc: MachineService = Depends(get_machine_service),
) -> MachineDto:
    return svc.create(body)


@router.put("/{machine_id}", response_model=MachineDto)
@router.patch("/{machine_id}", response_model=MachineDto)
def update_machine(
    machine_id: int,
    body: UpdateMachineRequest,
    svc: MachineService = Depends(get_machine_service),
) -> MachineDto:
    """
    Full or partial update: only the fields present in the body change.
    PUT and PATCH share this handler.
    """
    machine = svc.update(machine_id, body)
    if machine is None:
        logger.warning("Machine with ID %s not found for update", machine_id)
        raise _not_found(machine_id)
    return machine


@router.delete("/{machine_id}", status_code=204)
def delete_machine(
    machine_id: int,
    svc: MachineService = Depends(get_machine_service),
) -> None:
    """
    Delete a machine and its tubes; the location row stays.
    """
    if not svc.delete(machine_id):
        logger.warning("Machine with ID %s not found for deletion", machine_id)
        raise _not_found(machine_id)
    logger.info("Machine with ID %s deleted successfully", machine_id)
    # 204 No Content
