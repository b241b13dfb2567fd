"""
Engine configuration.

Tunables (labor rate, tax rates, regex budget, staleness window) are read from
``settings.COSTING_ENGINE`` into immutable dataclasses. Services take a
``config`` argument and fall back to ``EngineConfig.from_settings()``, so tests
can run the same code against several rate regimes without touching globals.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


def _decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ImproperlyConfigured(f"COSTING_ENGINE: '{name}' is not a valid number: {value!r}")


@dataclass(frozen=True)
class WithholdingRates:
    """Employee-side withholding, as fractions of gross pay."""
    federal: Decimal = Decimal("0.12")
    state: Decimal = Decimal("0.05")
    ss: Decimal = Decimal("0.062")
    medicare: Decimal = Decimal("0.0145")

    @property
    def total(self) -> Decimal:
        return self.federal + self.state + self.ss + self.medicare


@dataclass(frozen=True)
class EmployerRates:
    """Employer-side burden, as fractions of gross pay."""
    ss: Decimal = Decimal("0.062")
    medicare: Decimal = Decimal("0.0145")
    futa: Decimal = Decimal("0.006")
    suta: Decimal = Decimal("0.027")

    @property
    def total(self) -> Decimal:
        return self.ss + self.medicare + self.futa + self.suta


@dataclass(frozen=True)
class LedgerAccounts:
    """Account codes used when generating ledger lines."""
    cash: str = "1000"
    inventory: str = "1300"
    accounts_payable: str = "2000"
    default_expense: str = "9200"


@dataclass(frozen=True)
class EngineConfig:
    effective_hourly_labor_rate: Decimal = Decimal("15.00")
    withholding_rates: WithholdingRates = field(default_factory=WithholdingRates)
    employer_rates: EmployerRates = field(default_factory=EmployerRates)
    overtime_multiplier: Decimal = Decimal("1.5")
    regex_timeout_ms: int = 50
    price_staleness_days: int = 30
    se_tax_rate: Decimal = Decimal("0.153")
    se_earnings_factor: Decimal = Decimal("0.9235")
    estimated_income_tax_rate: Decimal = Decimal("0.25")
    form_1099_threshold: Decimal = Decimal("600.00")
    form_1099_near_threshold: Decimal = Decimal("400.00")
    ledger_accounts: LedgerAccounts = field(default_factory=LedgerAccounts)

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "EngineConfig":
        """
        Build a config from a ``COSTING_ENGINE``-shaped dict.

        Missing keys keep their defaults. Raises ImproperlyConfigured for
        values that cannot be parsed or are out of range.
        """
        raw = raw or {}
        defaults = cls()
        kwargs = {}

        decimal_keys = {
            "EFFECTIVE_HOURLY_LABOR_RATE": "effective_hourly_labor_rate",
            "OVERTIME_MULTIPLIER": "overtime_multiplier",
            "SE_TAX_RATE": "se_tax_rate",
            "SE_EARNINGS_FACTOR": "se_earnings_factor",
            "ESTIMATED_INCOME_TAX_RATE": "estimated_income_tax_rate",
            "FORM_1099_THRESHOLD": "form_1099_threshold",
            "FORM_1099_NEAR_THRESHOLD": "form_1099_near_threshold",
        }
        for key, attr in decimal_keys.items():
            if key in raw:
                kwargs[attr] = _decimal(raw[key], key)

        for key, attr in (("REGEX_TIMEOUT_MS", "regex_timeout_ms"),
                          ("PRICE_STALENESS_DAYS", "price_staleness_days")):
            if key in raw:
                try:
                    kwargs[attr] = int(raw[key])
                except (TypeError, ValueError):
                    raise ImproperlyConfigured(f"COSTING_ENGINE: '{key}' must be an integer")

        if "WITHHOLDING_RATES" in raw:
            kwargs["withholding_rates"] = WithholdingRates(**{
                name: _decimal(value, f"WITHHOLDING_RATES.{name}")
                for name, value in raw["WITHHOLDING_RATES"].items()
            })
        if "EMPLOYER_RATES" in raw:
            kwargs["employer_rates"] = EmployerRates(**{
                name: _decimal(value, f"EMPLOYER_RATES.{name}")
                for name, value in raw["EMPLOYER_RATES"].items()
            })
        if "LEDGER_ACCOUNTS" in raw:
            kwargs["ledger_accounts"] = LedgerAccounts(**{
                name: str(value) for name, value in raw["LEDGER_ACCOUNTS"].items()
            })

        config = cls(**{**defaults.__dict__, **kwargs})
        config.validate()
        return config

    @classmethod
    def from_settings(cls) -> "EngineConfig":
        return cls.from_dict(getattr(settings, "COSTING_ENGINE", None))

    def validate(self) -> None:
        if self.effective_hourly_labor_rate < 0:
            raise ImproperlyConfigured("effective_hourly_labor_rate cannot be negative")
        if self.regex_timeout_ms <= 0:
            raise ImproperlyConfigured("regex_timeout_ms must be positive")
        if self.price_staleness_days < 0:
            raise ImproperlyConfigured("price_staleness_days cannot be negative")
        for group in (self.withholding_rates, self.employer_rates):
            for name, rate in group.__dict__.items():
                if rate < 0 or rate > 1:
                    raise ImproperlyConfigured(
                        f"{type(group).__name__}.{name} must be between 0 and 1, got {rate}"
                    )


def get_engine_config(config: Optional[EngineConfig] = None) -> EngineConfig:
    """Return ``config`` if given, else the settings-derived configuration."""
    return config if config is not None else EngineConfig.from_settings()
