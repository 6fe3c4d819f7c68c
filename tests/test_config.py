"""
Unit tests for the application configuration (Settings).
"""

import os
from decimal import Decimal

import pytest

from clinicpos.core.config import Settings, settings


class TestSettingsDefaults:
    def test_api_prefix(self):
        assert settings.API_PREFIX == "/api"

    def test_tests_run_on_sqlite(self):
        assert settings.USE_SQLITE is True
        assert settings.DATABASE_URL.startswith("sqlite+aiosqlite://")

    def test_billing_defaults(self):
        s = Settings(USE_SQLITE=True, _env_file=None)  # type: ignore[call-arg]
        assert s.INVOICE_PREFIX == "INV"
        assert s.PRIMARY_CURRENCY == "USD"
        assert s.SECONDARY_CURRENCY is None
        assert s.EXCHANGE_RATE == Decimal("1")

    def test_share_rounding_default_is_per_row(self):
        s = Settings(USE_SQLITE=True, _env_file=None)  # type: ignore[call-arg]
        assert s.SHARE_ROUNDING == "per_row"

    def test_unknown_share_rounding_rejected(self):
        with pytest.raises(Exception, match="SHARE_ROUNDING"):
            Settings(USE_SQLITE=True, SHARE_ROUNDING="banker", _env_file=None)  # type: ignore[call-arg]


class TestDatabaseURL:
    def test_postgres_url(self):
        s = Settings(
            USE_SQLITE=False,
            POSTGRES_USER="u",
            POSTGRES_PASSWORD="p",
            POSTGRES_SERVER="db.local",
            POSTGRES_DB="clinic",
            POSTGRES_PORT=5433,
        )
        assert s.DATABASE_URL == "postgresql+asyncpg://u:p@db.local:5433/clinic"

    def test_missing_pg_credentials_fail_fast(self, monkeypatch):
        for key in ("USE_SQLITE", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_SERVER", "POSTGRES_DB"):
            monkeypatch.delenv(key, raising=False)

        with pytest.raises(Exception, match="POSTGRES_USER"):
            Settings(USE_SQLITE=False, _env_file=None)  # type: ignore[call-arg]

        assert "USE_SQLITE" not in os.environ
