"""
Schemas for the derived investor ledger.  Rows are built from
:class:`clinicpos.ledger.reconcile.LedgerRow` dataclasses, never stored.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from clinicpos.ledger.reconcile import LedgerStatus
from clinicpos.schemas.common import Money


class LedgerRowResponse(BaseModel):
    investment_id: int
    investment_title: str
    investor_id: Optional[int] = None
    investor_name: str
    share_amount: Money
    paid: Money
    due: Money
    overpaid: Money
    paid_pct: int
    status: LedgerStatus
    contribution_count: int

    model_config = ConfigDict(from_attributes=True)


class LedgerSummaryResponse(BaseModel):
    share_amount: Money
    paid: Money
    due: Money
    overpaid: Money
    rows: int
    by_status: Dict[str, int]

    model_config = ConfigDict(from_attributes=True)


class LedgerResponse(BaseModel):
    rows: List[LedgerRowResponse]
    summary: LedgerSummaryResponse
