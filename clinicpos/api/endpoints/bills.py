"""
Bill API endpoints.

Totals, status and ``bill_no`` are always computed server-side; see
:mod:`clinicpos.services.bill_service`.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinicpos.db.session import get_db
from clinicpos.models.bill import Bill
from clinicpos.models.medicine import Medicine
from clinicpos.repositories.bill_repo import BillRepository
from clinicpos.repositories.medicine_repo import MedicineRepository
from clinicpos.schemas.bill import BillCreate, BillResponse, BillUpdate
from clinicpos.schemas.common import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    ErrorResponse,
    MessageResponse,
    ValidationErrorResponse,
)
from clinicpos.services.bill_service import BillService

router = APIRouter()


def _get_bill_service(db: AsyncSession = Depends(get_db)) -> BillService:
    return BillService(BillRepository(Bill, db), MedicineRepository(Medicine, db))


@router.get("", response_model=List[BillResponse], summary="List bills")
async def list_bills(
    search: Optional[str] = Query(None, description="Patient name or invoice number"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    service: BillService = Depends(_get_bill_service),
) -> List[BillResponse]:
    return await service.get_all_bills(search=search, skip=skip, limit=limit)


@router.post(
    "",
    response_model=BillResponse,
    status_code=201,
    summary="Issue a bill",
    responses={
        404: {"model": ErrorResponse, "description": "Medicine not found"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def create_bill(
    bill: BillCreate,
    service: BillService = Depends(_get_bill_service),
) -> BillResponse:
    return await service.create_bill(bill)


@router.post("/bulk-delete", response_model=BulkDeleteResponse, summary="Delete several bills")
async def bulk_delete_bills(
    request: BulkDeleteRequest,
    service: BillService = Depends(_get_bill_service),
) -> BulkDeleteResponse:
    deleted = await service.bulk_delete(request.ids)
    return BulkDeleteResponse(deleted=deleted)


@router.get(
    "/{bill_id}",
    response_model=BillResponse,
    summary="Get a specific bill",
    responses={404: {"model": ErrorResponse, "description": "Bill not found"}},
)
async def get_bill(
    bill_id: int,
    service: BillService = Depends(_get_bill_service),
) -> BillResponse:
    return await service.get_bill(bill_id)


@router.put(
    "/{bill_id}",
    response_model=BillResponse,
    summary="Record a payment on a bill",
    responses={404: {"model": ErrorResponse, "description": "Bill not found"}},
)
async def update_bill(
    bill_id: int,
    bill: BillUpdate,
    service: BillService = Depends(_get_bill_service),
) -> BillResponse:
    return await service.update_bill(bill_id, bill)


@router.delete(
    "/{bill_id}",
    response_model=MessageResponse,
    summary="Delete a bill",
    responses={404: {"model": ErrorResponse, "description": "Bill not found"}},
)
async def delete_bill(
    bill_id: int,
    service: BillService = Depends(_get_bill_service),
) -> MessageResponse:
    await service.delete_bill(bill_id)
    return MessageResponse(message=f"Bill {bill_id} deleted")
