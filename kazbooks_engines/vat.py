"""
VAT helpers.

Whole-tenge value-added tax arithmetic for the rates in use in Kazakhstan
(0%, 5% and 12%) plus the exempt case.  Pure functions, no I/O.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from kazbooks_engines.payroll import round_tenge
from kazbooks_kernel.domain.dtos import ZERO


class VatRate(str, Enum):
    ZERO = "0"
    REDUCED = "5"
    STANDARD = "12"
    EXEMPT = "exempt"

    @property
    def percent(self) -> Decimal:
        if self is VatRate.EXEMPT:
            return ZERO
        return Decimal(self.value)


@dataclass(frozen=True)
class VatResult:
    base: Decimal
    vat: Decimal
    total: Decimal
    rate: VatRate


def calculate_vat(base: Decimal, rate: VatRate) -> VatResult:
    """VAT on top of a net amount."""
    amount = Decimal(base)
    rounded = round_tenge(amount)
    if rate.percent == ZERO:
        return VatResult(base=rounded, vat=ZERO, total=rounded, rate=rate)
    vat = round_tenge(amount * rate.percent / Decimal(100))
    return VatResult(base=rounded, vat=vat, total=rounded + vat, rate=rate)


def extract_vat(total: Decimal, rate: VatRate) -> VatResult:
    """Split a VAT-inclusive amount into base and VAT."""
    total = round_tenge(Decimal(total))
    if rate.percent == ZERO:
        return VatResult(base=total, vat=ZERO, total=total, rate=rate)
    base = round_tenge(total / (1 + rate.percent / Decimal(100)))
    return VatResult(base=base, vat=total - base, total=total, rate=rate)
