"""SQLModel table models; imported here so metadata is populated."""

from clinicpos.models.bill import Bill  # noqa: F401
from clinicpos.models.contribution import Contribution  # noqa: F401
from clinicpos.models.investment import Investment  # noqa: F401
from clinicpos.models.investor import Investor  # noqa: F401
from clinicpos.models.medicine import Medicine, StockAdjustment  # noqa: F401
