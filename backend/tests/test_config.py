"""Tests for pricing-related settings."""

from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from renthub.config import Settings
from renthub.pricing import BillingUnit


def test_defaults_build_pricing_config():
    config = Settings(_env_file=None).pricing_config()
    assert config.tax_rate == Decimal("0.18")
    assert config.platform_fee_rate is None
    assert config.currency == "inr"
    assert config.billing_unit is BillingUnit.TIER
    assert config.preparing_horizon == timedelta(hours=24)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("TAX_RATE", "0.05")
    monkeypatch.setenv("PLATFORM_FEE_RATE", "0.02")
    monkeypatch.setenv("BILLING_UNIT", "day")
    config = Settings(_env_file=None).pricing_config()
    assert config.tax_rate == Decimal("0.05")
    assert config.platform_fee_rate == Decimal("0.02")
    assert config.billing_unit is BillingUnit.DAY


def test_rate_out_of_range_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, tax_rate=Decimal("1.5"))


def test_frontend_url_added_to_cors():
    settings = Settings(_env_file=None, frontend_url="https://renthub.example")
    assert "https://renthub.example" in settings.cors_origins


def test_async_database_url_forces_asyncpg():
    settings = Settings(_env_file=None, database_url="postgresql://u:p@db:5432/renthub")
    assert settings.async_database_url == "postgresql+asyncpg://u:p@db:5432/renthub"
