"""
Investor API endpoints.

- GET    /investors          List investors (by name)
- POST   /investors          Register an investor
- GET    /investors/{id}     Retrieve one investor
- PUT    /investors/{id}     Partial update
- DELETE /investors/{id}     Remove (contributions keep their name label)
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinicpos.db.session import get_db
from clinicpos.models.investor import Investor
from clinicpos.repositories.investor_repo import InvestorRepository
from clinicpos.schemas.common import ErrorResponse, MessageResponse, ValidationErrorResponse
from clinicpos.schemas.investor import InvestorCreate, InvestorResponse, InvestorUpdate
from clinicpos.services.investor_service import InvestorService

router = APIRouter()


def _get_investor_service(db: AsyncSession = Depends(get_db)) -> InvestorService:
    """Build an InvestorService wired to the current request's DB session."""
    return InvestorService(InvestorRepository(Investor, db))


@router.get("", response_model=List[InvestorResponse], summary="List all investors")
async def list_investors(
    service: InvestorService = Depends(_get_investor_service),
) -> List[InvestorResponse]:
    return await service.get_all_investors()


@router.post(
    "",
    response_model=InvestorResponse,
    status_code=201,
    summary="Register a new investor",
    responses={
        409: {"model": ErrorResponse, "description": "Name already registered"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def create_investor(
    investor: InvestorCreate,
    service: InvestorService = Depends(_get_investor_service),
) -> InvestorResponse:
    return await service.create_investor(investor)


@router.get(
    "/{investor_id}",
    response_model=InvestorResponse,
    summary="Get a specific investor",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def get_investor(
    investor_id: int,
    service: InvestorService = Depends(_get_investor_service),
) -> InvestorResponse:
    return await service.get_investor(investor_id)


@router.put(
    "/{investor_id}",
    response_model=InvestorResponse,
    summary="Update an investor",
    responses={
        404: {"model": ErrorResponse, "description": "Investor not found"},
        409: {"model": ErrorResponse, "description": "Name already registered"},
    },
)
async def update_investor(
    investor_id: int,
    investor: InvestorUpdate,
    service: InvestorService = Depends(_get_investor_service),
) -> InvestorResponse:
    return await service.update_investor(investor_id, investor)


@router.delete(
    "/{investor_id}",
    response_model=MessageResponse,
    summary="Remove an investor",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def delete_investor(
    investor_id: int,
    service: InvestorService = Depends(_get_investor_service),
) -> MessageResponse:
    await service.delete_investor(investor_id)
    return MessageResponse(message=f"Investor {investor_id} deleted")
