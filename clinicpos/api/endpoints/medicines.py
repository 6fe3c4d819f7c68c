"""
Medicine inventory endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinicpos.db.session import get_db
from clinicpos.models.medicine import Medicine
from clinicpos.repositories.medicine_repo import MedicineRepository
from clinicpos.schemas.common import ErrorResponse, MessageResponse
from clinicpos.schemas.medicine import (
    MedicineCreate,
    MedicineResponse,
    MedicineUpdate,
    StockAdjustmentRequest,
    StockAdjustmentResponse,
)
from clinicpos.services.medicine_service import MedicineService

router = APIRouter()

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Medicine not found"}}


def _get_medicine_service(db: AsyncSession = Depends(get_db)) -> MedicineService:
    return MedicineService(MedicineRepository(Medicine, db))


@router.get("", response_model=List[MedicineResponse], summary="List medicines")
async def list_medicines(
    active_only: bool = Query(False, alias="activeOnly"),
    service: MedicineService = Depends(_get_medicine_service),
) -> List[MedicineResponse]:
    return await service.get_all_medicines(active_only=active_only)


@router.post("", response_model=MedicineResponse, status_code=201, summary="Add a medicine")
async def create_medicine(
    medicine: MedicineCreate,
    service: MedicineService = Depends(_get_medicine_service),
) -> MedicineResponse:
    return await service.create_medicine(medicine)


@router.get("/{medicine_id}", response_model=MedicineResponse, responses=_NOT_FOUND)
async def get_medicine(
    medicine_id: int,
    service: MedicineService = Depends(_get_medicine_service),
) -> MedicineResponse:
    return await service.get_medicine(medicine_id)


@router.put("/{medicine_id}", response_model=MedicineResponse, responses=_NOT_FOUND)
async def update_medicine(
    medicine_id: int,
    medicine: MedicineUpdate,
    service: MedicineService = Depends(_get_medicine_service),
) -> MedicineResponse:
    return await service.update_medicine(medicine_id, medicine)


@router.delete("/{medicine_id}", response_model=MessageResponse, responses=_NOT_FOUND)
async def delete_medicine(
    medicine_id: int,
    service: MedicineService = Depends(_get_medicine_service),
) -> MessageResponse:
    await service.delete_medicine(medicine_id)
    return MessageResponse(message=f"Medicine {medicine_id} deleted")


@router.post(
    "/{medicine_id}/adjust-stock",
    response_model=MedicineResponse,
    summary="Set, add to or subtract from the stock",
    responses={
        **_NOT_FOUND,
        422: {"model": ErrorResponse, "description": "Would take stock below zero"},
    },
)
async def adjust_stock(
    medicine_id: int,
    request: StockAdjustmentRequest,
    service: MedicineService = Depends(_get_medicine_service),
) -> MedicineResponse:
    return await service.adjust_stock(medicine_id, request)


@router.get(
    "/{medicine_id}/adjustments",
    response_model=List[StockAdjustmentResponse],
    summary="Stock adjustment journal, newest first",
    responses=_NOT_FOUND,
)
async def list_adjustments(
    medicine_id: int,
    service: MedicineService = Depends(_get_medicine_service),
) -> List[StockAdjustmentResponse]:
    return await service.get_adjustments(medicine_id)
