"""Currency display helpers. Symbols only; amounts are never converted."""

from decimal import Decimal

from investcalc.domain.accumulation import round_to_cents
from investcalc.schemas.accumulation import InvestmentResult, InvestmentSummary

DEFAULT_SYMBOL = "$"

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
}


def currency_symbol(code: str) -> str:
    """Return the display symbol for a currency code, ``$`` when unknown."""
    return CURRENCY_SYMBOLS.get((code or "").strip().upper(), DEFAULT_SYMBOL)


def format_money(amount: Decimal, code: str) -> str:
    rounded = round_to_cents(amount)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{currency_symbol(code)}{abs(rounded):,.2f}"


def summarize(result: InvestmentResult, code: str) -> InvestmentSummary:
    return InvestmentSummary(
        end_balance=format_money(result.final_balance, code),
        starting_amount=format_money(result.starting_amount, code),
        total_contributions=format_money(result.total_contributions, code),
        total_interest=format_money(result.total_interest, code),
    )
