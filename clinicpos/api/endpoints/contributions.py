"""
Contribution API endpoints, including spreadsheet export and import.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from clinicpos.db.session import get_db
from clinicpos.models.contribution import Contribution
from clinicpos.models.investment import Investment
from clinicpos.models.investor import Investor
from clinicpos.repositories.contribution_repo import ContributionRepository
from clinicpos.repositories.investment_repo import InvestmentRepository
from clinicpos.repositories.investor_repo import InvestorRepository
from clinicpos.schemas.common import ErrorResponse, MessageResponse, ValidationErrorResponse
from clinicpos.schemas.contribution import (
    ContributionCreate,
    ContributionResponse,
    ContributionUpdate,
    ImportResult,
)
from clinicpos.services.contribution_service import ContributionService
from clinicpos.services.spreadsheet import XLSX_MEDIA_TYPE, SpreadsheetService

router = APIRouter()


def _get_contribution_service(db: AsyncSession = Depends(get_db)) -> ContributionService:
    """Build a ContributionService wired to the current request's DB session."""
    return ContributionService(
        ContributionRepository(Contribution, db),
        InvestmentRepository(Investment, db),
        InvestorRepository(Investor, db),
    )


def _get_spreadsheet_service(
    db: AsyncSession = Depends(get_db),
    contributions: ContributionService = Depends(_get_contribution_service),
) -> SpreadsheetService:
    return SpreadsheetService(contributions, InvestmentRepository(Investment, db))


def _xlsx(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("", response_model=List[ContributionResponse], summary="List contributions")
async def list_contributions(
    investment_id: Optional[int] = Query(
        None, alias="investmentId", description="Only contributions toward this investment"
    ),
    skip: int = Query(0, ge=0),
    limit: int = Query(1000, ge=1, le=10000),
    service: ContributionService = Depends(_get_contribution_service),
) -> List[ContributionResponse]:
    return await service.get_all_contributions(investment_id=investment_id, skip=skip, limit=limit)


@router.post(
    "",
    response_model=ContributionResponse,
    status_code=201,
    summary="Record a contribution",
    responses={
        404: {"model": ErrorResponse, "description": "Investment or investor not found"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def create_contribution(
    contribution: ContributionCreate,
    service: ContributionService = Depends(_get_contribution_service),
) -> ContributionResponse:
    return await service.create_contribution(contribution)


@router.get("/export/xlsx", summary="Export all contributions as xlsx")
async def export_contributions(
    service: SpreadsheetService = Depends(_get_spreadsheet_service),
) -> Response:
    return _xlsx(await service.export_contributions(), "contributions.xlsx")


@router.get("/sample-template", summary="Download the contribution import template")
async def sample_template(
    service: SpreadsheetService = Depends(_get_spreadsheet_service),
) -> Response:
    return _xlsx(await service.template(), "contribution_import_template.xlsx")


@router.post(
    "/import",
    response_model=ImportResult,
    summary="Import contributions from .xlsx or .csv",
    description="Rows naming an unknown investment title are skipped and counted.",
    responses={400: {"model": ErrorResponse, "description": "Missing or unreadable file"}},
)
async def import_contributions(
    file: UploadFile = File(..., description=".xlsx or .csv with Date, Investment, Investor, Category, Amount, Note"),
    service: SpreadsheetService = Depends(_get_spreadsheet_service),
) -> ImportResult:
    content = await file.read()
    return await service.import_contributions(content, file.filename)


@router.get(
    "/{contribution_id}",
    response_model=ContributionResponse,
    summary="Get a specific contribution",
    responses={404: {"model": ErrorResponse, "description": "Contribution not found"}},
)
async def get_contribution(
    contribution_id: int,
    service: ContributionService = Depends(_get_contribution_service),
) -> ContributionResponse:
    return await service.get_contribution(contribution_id)


@router.api_route(
    "/{contribution_id}",
    methods=["PUT", "PATCH"],
    response_model=ContributionResponse,
    summary="Update a contribution",
    responses={404: {"model": ErrorResponse, "description": "Contribution not found"}},
)
async def update_contribution(
    contribution_id: int,
    contribution: ContributionUpdate,
    service: ContributionService = Depends(_get_contribution_service),
) -> ContributionResponse:
    return await service.update_contribution(contribution_id, contribution)


@router.delete(
    "/{contribution_id}",
    response_model=MessageResponse,
    summary="Delete a contribution",
    responses={404: {"model": ErrorResponse, "description": "Contribution not found"}},
)
async def delete_contribution(
    contribution_id: int,
    service: ContributionService = Depends(_get_contribution_service),
) -> MessageResponse:
    await service.delete_contribution(contribution_id)
    return MessageResponse(message=f"Contribution {contribution_id} deleted")
