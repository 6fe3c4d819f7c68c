"""
Contribution spreadsheets: xlsx export, the import template and the
xlsx / csv importer.

Sheets use the columns ``Date, Investment, Investor, Category, Amount, Note``.
The importer matches column headers case-insensitively and investments by
title (also case-insensitively).  Rows naming an unknown investment are
skipped and counted; rows with a bad amount or date are skipped and reported.
All accepted rows are inserted in one transaction.
"""

import io
import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from clinicpos.core.config import settings
from clinicpos.core.exceptions import BadRequestException
from clinicpos.ledger.reconcile import shares_for
from clinicpos.models.contribution import Contribution
from clinicpos.models.investment import Investment
from clinicpos.repositories.investment_repo import InvestmentRepository
from clinicpos.schemas.contribution import ImportResult
from clinicpos.services.contribution_service import ContributionService, linked_investor_id

logger = logging.getLogger(__name__)

COLUMNS = ["Date", "Investment", "Investor", "Category", "Amount", "Note"]
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Excel limits sheet names to 31 characters without []:*?/\
_SHEET_NAME_BAD_CHARS = re.compile(r"[\[\]:*?/\\]")


def _sheet_name(name: str, taken: set) -> str:
    base = _SHEET_NAME_BAD_CHARS.sub("_", name).strip()[:31] or "Sheet"
    candidate, n = base, 2
    while candidate.lower() in taken:
        suffix = f" ({n})"
        candidate = base[: 31 - len(suffix)] + suffix
        n += 1
    taken.add(candidate.lower())
    return candidate


def _write_workbook(sheets: Dict[str, pd.DataFrame]) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for sheet_name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
    return buffer.getvalue()


def contributions_to_xlsx(
    contributions: Sequence[Contribution], investments: Sequence[Investment]
) -> bytes:
    """One ``Contributions`` sheet, one row per contribution."""
    titles = {inv.id: inv.title for inv in investments}
    rows = [
        {
            "Date": c.date.isoformat(),
            "Investment": titles.get(c.investment_id, f"#{c.investment_id}"),
            "Investor": c.investor_name,
            "Category": c.category or "",
            "Amount": float(c.amount),
            "Note": c.note or "",
        }
        for c in contributions
    ]
    return _write_workbook({"Contributions": pd.DataFrame(rows, columns=COLUMNS)})


def sample_template(investments: Sequence[Investment]) -> bytes:
    """
    An ``Import Template`` sheet pre-filled with example rows that use real
    investment titles and investor names, plus one sheet per investor that
    appears in the examples.
    """
    names: List[str] = []
    for investment in investments:
        for share in shares_for(investment):
            if share.name not in names:
                names.append(share.name)

    title = investments[0].title if investments else "Investment Name"
    first = names[0] if names else "Investor Name"
    second = names[1] if len(names) > 1 else "Investor 2"
    examples = pd.DataFrame(
        [
            ["2026-02-14", title, first, "Advance Deposit", "5000.00", "Monthly contribution"],
            ["2026-02-13", title, second, "Equipment", "3000.00", "Equipment purchase"],
            ["2026-02-12", title, first, "Other", "1500.00", ""],
        ],
        columns=COLUMNS,
    )

    taken = {"import template"}
    sheets = {"Import Template": examples}
    for name in names:
        own = examples[examples["Investor"] == name]
        if not own.empty:
            sheets[_sheet_name(name, taken)] = own
    return _write_workbook(sheets)


def read_rows(content: bytes, filename: Optional[str]) -> List[Dict[str, Any]]:
    """
    Parse the first sheet of an xlsx file, or a csv file, into row dicts keyed
    by lower-cased header.  Empty cells become ``None``.

    Raises :class:`BadRequestException` for empty, oversized, unsupported or
    unreadable uploads.
    """
    if not content:
        raise BadRequestException("No file uploaded")
    if len(content) > settings.IMPORT_MAX_BYTES:
        raise BadRequestException(
            f"File is too large (limit {settings.IMPORT_MAX_BYTES} bytes)"
        )

    suffix = (filename or "").rsplit(".", 1)[-1].lower()
    try:
        if suffix == "csv":
            frame = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False)
        elif suffix in ("xlsx", "xlsm"):
            frame = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=object, engine="openpyxl")
        else:
            raise BadRequestException("Only .xlsx and .csv files can be imported")
    except BadRequestException:
        raise
    except Exception as exc:
        logger.warning("Unreadable import file %s: %s", filename, exc)
        raise BadRequestException(f"Could not read {filename or 'file'}: {exc}")

    frame.columns = [str(c).strip().lower() for c in frame.columns]
    frame = frame.astype(object).where(pd.notna(frame), None)
    return frame.to_dict(orient="records")


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _parse_amount(value: Any) -> Optional[Decimal]:
    try:
        amount = Decimal(_text(value).replace(",", ""))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() and amount > 0 else None


def _parse_date(value: Any) -> Optional[date]:
    if value is None or _text(value) == "":
        return date.today()
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


class SpreadsheetService:
    """Import and export of contributions as spreadsheets."""

    def __init__(self, contribution_service: ContributionService, invest_repo: InvestmentRepository):
        self._contributions = contribution_service
        self._invest_repo = invest_repo

    async def export_contributions(self) -> bytes:
        contributions = await self._contributions.get_all_contributions(limit=100000)
        investments = await self._invest_repo.list_all()
        return contributions_to_xlsx(contributions, investments)

    async def template(self) -> bytes:
        return sample_template(await self._invest_repo.list_all())

    async def import_contributions(self, content: bytes, filename: Optional[str]) -> ImportResult:
        rows = read_rows(content, filename)
        investments = {inv.title.strip().lower(): inv for inv in await self._invest_repo.list_all()}

        result = ImportResult()
        accepted: List[Contribution] = []
        for line, row in enumerate(rows, start=2):
            investment = investments.get(_text(row.get("investment")).lower())
            if investment is None:
                result.skipped += 1
                continue

            investor_name = _text(row.get("investor"))
            amount = _parse_amount(row.get("amount"))
            paid_on = _parse_date(row.get("date"))
            problem = None
            if not investor_name:
                problem = "missing investor"
            elif amount is None:
                problem = f"invalid amount {row.get('amount')!r}"
            elif paid_on is None:
                problem = f"invalid date {row.get('date')!r}"
            if problem:
                result.skipped += 1
                result.errors.append(f"Row {line}: {problem}")
                continue

            accepted.append(
                Contribution(
                    investment_id=investment.id,
                    investor_id=linked_investor_id(investment, investor_name),
                    investor_name=investor_name,
                    amount=amount,
                    date=paid_on,
                    category=_text(row.get("category")) or None,
                    note=_text(row.get("note")) or None,
                )
            )

        created = await self._contributions.create_many(accepted)
        result.imported = len(created)
        logger.info(
            "Import of %s: %d imported, %d skipped", filename, result.imported, result.skipped
        )
        return result
