"""
Investment API endpoints.

Fixed paths (``/ledger``, ``/normalize``, ``/bulk-delete``,
``/batch-update``) are declared before ``/{investment_id}`` so they are
never captured by it.
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinicpos.db.session import get_db
from clinicpos.ledger.reconcile import LedgerRow, LedgerSummary
from clinicpos.models.contribution import Contribution
from clinicpos.models.investment import Investment
from clinicpos.models.investor import Investor
from clinicpos.repositories.contribution_repo import ContributionRepository
from clinicpos.repositories.investment_repo import InvestmentRepository
from clinicpos.repositories.investor_repo import InvestorRepository
from clinicpos.schemas.common import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    ErrorResponse,
    MessageResponse,
    ValidationErrorResponse,
)
from clinicpos.schemas.investment import (
    InvestmentBatchUpdate,
    InvestmentCreate,
    InvestmentResponse,
    InvestmentUpdate,
    InvestorShareOut,
    NormalizePreviewRequest,
    NormalizePreviewResponse,
)
from clinicpos.schemas.ledger import LedgerResponse, LedgerRowResponse, LedgerSummaryResponse
from clinicpos.services.investment_service import InvestmentService

router = APIRouter()


def _get_investment_service(db: AsyncSession = Depends(get_db)) -> InvestmentService:
    """Build an InvestmentService wired to the current request's DB session."""
    return InvestmentService(
        InvestmentRepository(Investment, db),
        InvestorRepository(Investor, db),
        ContributionRepository(Contribution, db),
    )


def _ledger_response(rows: List[LedgerRow], summary: LedgerSummary) -> LedgerResponse:
    return LedgerResponse(
        rows=[LedgerRowResponse.model_validate(row) for row in rows],
        summary=LedgerSummaryResponse.model_validate(summary),
    )


@router.get("", response_model=List[InvestmentResponse], summary="List all investments")
async def list_investments(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    service: InvestmentService = Depends(_get_investment_service),
) -> List[InvestmentResponse]:
    return await service.get_all_investments(skip=skip, limit=limit)


@router.post(
    "",
    response_model=InvestmentResponse,
    status_code=201,
    summary="Create an investment",
    description="Share weights are normalized to percentages of ``amount`` before storing.",
    responses={
        404: {"model": ErrorResponse, "description": "Referenced investor not found"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def create_investment(
    investment: InvestmentCreate,
    service: InvestmentService = Depends(_get_investment_service),
) -> InvestmentResponse:
    return await service.create_investment(investment)


@router.get(
    "/ledger",
    response_model=LedgerResponse,
    summary="Investor ledger across all investments",
)
async def get_ledger(
    service: InvestmentService = Depends(_get_investment_service),
) -> LedgerResponse:
    rows, summary = await service.get_ledger()
    return _ledger_response(rows, summary)


@router.post(
    "/normalize",
    response_model=NormalizePreviewResponse,
    summary="Preview share normalization",
    description="Normalizes a share list against an amount without storing anything.",
)
async def preview_normalization(
    request: NormalizePreviewRequest,
    service: InvestmentService = Depends(_get_investment_service),
) -> NormalizePreviewResponse:
    shares, total_pct, total_amount = service.preview_normalization(request)
    return NormalizePreviewResponse(
        investors=[InvestorShareOut(**share.to_dict()) for share in shares],
        total_percentage=float(total_pct),
        total_amount=total_amount,
    )


@router.post(
    "/bulk-delete",
    response_model=BulkDeleteResponse,
    summary="Delete several investments",
    description="All or nothing: if any investment has contributions, none is deleted.",
    responses={409: {"model": ErrorResponse, "description": "Investment has contributions"}},
)
async def bulk_delete_investments(
    request: BulkDeleteRequest,
    service: InvestmentService = Depends(_get_investment_service),
) -> BulkDeleteResponse:
    deleted = await service.bulk_delete(request.ids)
    return BulkDeleteResponse(deleted=deleted)


@router.post(
    "/batch-update",
    response_model=List[InvestmentResponse],
    summary="Re-normalize several investments in one transaction",
    responses={
        404: {"model": ErrorResponse, "description": "Investment or investor not found"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def batch_update_investments(
    request: InvestmentBatchUpdate,
    service: InvestmentService = Depends(_get_investment_service),
) -> List[InvestmentResponse]:
    return await service.batch_update(request.updates)


@router.get(
    "/{investment_id}",
    response_model=InvestmentResponse,
    summary="Get a specific investment",
    responses={404: {"model": ErrorResponse, "description": "Investment not found"}},
)
async def get_investment(
    investment_id: int,
    service: InvestmentService = Depends(_get_investment_service),
) -> InvestmentResponse:
    return await service.get_investment(investment_id)


@router.get(
    "/{investment_id}/ledger",
    response_model=LedgerResponse,
    summary="Investor ledger of one investment",
    responses={404: {"model": ErrorResponse, "description": "Investment not found"}},
)
async def get_investment_ledger(
    investment_id: int,
    service: InvestmentService = Depends(_get_investment_service),
) -> LedgerResponse:
    rows, summary = await service.get_ledger(investment_id)
    return _ledger_response(rows, summary)


@router.put(
    "/{investment_id}",
    response_model=InvestmentResponse,
    summary="Update an investment",
    description="Partial update; shares are re-normalized when ``investors`` or ``amount`` change.",
    responses={
        404: {"model": ErrorResponse, "description": "Investment not found"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def update_investment(
    investment_id: int,
    investment: InvestmentUpdate,
    service: InvestmentService = Depends(_get_investment_service),
) -> InvestmentResponse:
    return await service.update_investment(investment_id, investment)


@router.delete(
    "/{investment_id}",
    response_model=MessageResponse,
    summary="Delete an investment",
    responses={
        404: {"model": ErrorResponse, "description": "Investment not found"},
        409: {"model": ErrorResponse, "description": "Investment has contributions"},
    },
)
async def delete_investment(
    investment_id: int,
    service: InvestmentService = Depends(_get_investment_service),
) -> MessageResponse:
    await service.delete_investment(investment_id)
    return MessageResponse(message=f"Investment {investment_id} deleted")
