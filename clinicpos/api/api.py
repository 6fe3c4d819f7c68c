"""
API router aggregation.

``main.py`` mounts this router at ``settings.API_PREFIX`` (``/api``).
"""

from fastapi import APIRouter

from clinicpos.api.endpoints import bills, contributions, investments, investors, medicines

api_router = APIRouter()

api_router.include_router(investors.router, prefix="/investors", tags=["Investors"])
api_router.include_router(investments.router, prefix="/investments", tags=["Investments"])
api_router.include_router(contributions.router, prefix="/contributions", tags=["Contributions"])
api_router.include_router(bills.router, prefix="/bills", tags=["Bills"])
api_router.include_router(medicines.router, prefix="/medicines", tags=["Medicines"])
