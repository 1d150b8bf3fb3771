"""
Deposit validation for Wells Fargo financed sales orders.

Kitchen Works orders need a 50% customer deposit before they move. For each
authorization waiting to be charged we compare:

    required = sales order total / 2
    after    = deposits already applied + amount about to be charged
    variance = after - required

variance == 0 is VALIDATED, below zero the order is SHORT, above it is OVER.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

REQUIRED_FRACTION = Decimal("0.5")

MATCHED = "matched"
SHORT = "short"
OVER = "over"

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Convert NetSuite values ("1,234.50", 12.5, None, "") to Decimal.
    Anything unparseable counts as 0, the way empty amounts show up in searches.
    """
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        result = Decimal(str(value).replace(",", "").replace("$", "").strip())
    except InvalidOperation:
        return Decimal("0")
    if not result.is_finite():
        return Decimal("0")
    return result


def money(value: Any) -> str:
    """Two-decimal display string."""
    return f"{to_decimal(value).quantize(CENT):.2f}"


@dataclass(frozen=True)
class DepositValidation:
    sales_order_total: Decimal
    required: Decimal
    prior_deposits: Decimal
    to_be_processed: Decimal
    after_processing: Decimal
    variance: Decimal

    @property
    def status(self) -> str:
        if self.variance == 0:
            return MATCHED
        if self.variance < 0:
            return SHORT
        return OVER

    @property
    def is_short(self) -> bool:
        return self.status == SHORT

    @property
    def label(self) -> str:
        if self.status == MATCHED:
            return "VALIDATED"
        if self.status == SHORT:
            return f"SHORT {money(abs(self.variance))}"
        return f"OVER {money(self.variance)}"

    def as_dict(self) -> dict:
        return {
            "sales_order_total": money(self.sales_order_total),
            "required": money(self.required),
            "prior_deposits": money(self.prior_deposits),
            "to_be_processed": money(self.to_be_processed),
            "after_processing": money(self.after_processing),
            "variance": money(self.variance),
            "status": self.status,
            "label": self.label,
        }


def validate_deposit(sales_order_total: Any, prior_deposits: Any, amount: Any) -> DepositValidation:
    """
    Compare prior deposits plus the new amount against half of the order total.
    """
    total = to_decimal(sales_order_total)
    prior = to_decimal(prior_deposits)
    new_amount = to_decimal(amount)

    required = total * REQUIRED_FRACTION
    after = prior + new_amount

    return DepositValidation(
        sales_order_total=total,
        required=required,
        prior_deposits=prior,
        to_be_processed=new_amount,
        after_processing=after,
        variance=after - required,
    )


def classify(sales_order_total: Any, prior_deposits: Any, amount: Any) -> str:
    """Shortcut returning only 'matched', 'short' or 'over'."""
    return validate_deposit(sales_order_total, prior_deposits, amount).status
