"""
Configuration Loader (``kazbooks_config.loader``).

Responsibility
--------------
Reads the YAML files under ``kazbooks_config/sets/`` and parses them into
typed frozen dataclasses: per-year ``TaxSettings``, the NSFO chart template
as a sequence of ``AccountSeed`` and the ``PostingDefaults``.

Architecture position
---------------------
**Config layer**.  Depends on the kernel domain types and on the payroll
engine's ``TaxSettings``; nothing in the kernel imports this package.
Callers use the entry points re-exported from ``kazbooks_config``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError``; required fields never
  fall back to silent defaults.
* Rates and amounts are parsed as ``Decimal`` from their string form.
* Template rows are ordered parents first.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown account class or non-numeric amount  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from kazbooks_engines.payroll import TaxSettings
from kazbooks_kernel.domain.dtos import AccountClass, AccountSeed
from kazbooks_kernel.logging_config import get_logger
from kazbooks_kernel.services.journal_service import PostingAccounts

logger = get_logger("config.loader")

_TAX_FIELDS = (
    "mrp",
    "mzp",
    "opv_rate",
    "opv_cap_mzp",
    "opvr_rate",
    "opvr_cap_mzp",
    "vosms_employee_rate",
    "vosms_employer_rate",
    "ipn_resident_rate",
    "ipn_nonresident_rate",
    "ipn_progressive_threshold",
    "ipn_progressive_rate",
    "standard_deduction_mrp",
    "social_tax_rate",
    "social_contrib_rate",
    "social_contrib_min_mzp",
    "social_contrib_max_mzp",
    "unified_payment_rate",
)


@dataclass(frozen=True)
class PostingDefaults:
    """Fallback counter accounts and default payroll mappings."""

    other_income_code: str
    other_expense_code: str
    payroll_mappings: dict[str, str] = field(default_factory=dict)

    def posting_accounts(self) -> PostingAccounts:
        return PostingAccounts(
            other_income_code=self.other_income_code,
            other_expense_code=self.other_expense_code,
        )


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(data).__name__}")
    return data


def _decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{name}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name}: expected a number, got {value!r}") from exc


def parse_tax_settings(year: int, data: dict[str, Any]) -> TaxSettings:
    """Parse one year's block.  ``TaxSettings.__post_init__`` validates ranges."""
    values = {name: _decimal(data[name], f"{year}.{name}") for name in _TAX_FIELDS}
    return TaxSettings(year=year, **values)


def parse_tax_years(data: dict[str, Any]) -> dict[int, TaxSettings]:
    years = data["years"]
    if not years:
        raise ValueError("tax settings: no years defined")
    return {int(year): parse_tax_settings(int(year), block) for year, block in years.items()}


def select_tax_year(available: dict[int, TaxSettings], year: int) -> TaxSettings:
    """
    Latest settings effective for ``year``.

    Years after the newest block use the newest block; years before the
    oldest use the oldest.
    """
    eligible = [y for y in available if y <= year]
    chosen = max(eligible) if eligible else min(available)
    if chosen != year:
        logger.debug("tax_settings_year_fallback", extra={"requested": year, "chosen": chosen})
    return available[chosen]


def parse_chart_template(data: dict[str, Any]) -> tuple[AccountSeed, ...]:
    """Flatten sections into seeds: each header followed by its accounts."""
    seeds: list[AccountSeed] = []
    for section in data["sections"]:
        code = str(section["code"])
        account_class = AccountClass(section["class"])
        is_current = section.get("is_current")
        seeds.append(
            AccountSeed(
                code=code,
                name=section["name"],
                account_class=account_class,
                allow_manual_entry=False,
                is_current=is_current,
            )
        )
        for child_code, child_name in (section.get("accounts") or {}).items():
            seeds.append(
                AccountSeed(
                    code=str(child_code),
                    name=child_name,
                    account_class=account_class,
                    parent_code=code,
                    is_current=is_current,
                )
            )
    codes = [seed.code for seed in seeds]
    if len(codes) != len(set(codes)):
        raise ValueError("chart template: duplicate account codes")
    return tuple(seeds)


def parse_posting_defaults(data: dict[str, Any]) -> PostingDefaults:
    return PostingDefaults(
        other_income_code=str(data["other_income_code"]),
        other_expense_code=str(data["other_expense_code"]),
        payroll_mappings={
            str(k): str(v) for k, v in (data.get("payroll_mappings") or {}).items()
        },
    )
