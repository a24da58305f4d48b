"""Data contracts for investment projection results."""

from decimal import Decimal
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Full engine precision in Python, exact decimal strings on the wire.
Money = Annotated[Decimal, PlainSerializer(str, return_type=str, when_used="json")]


class YearlyRow(BaseModel):
    """One year of the projection schedule."""

    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=1)
    start_balance: Money
    contributions: Money
    interest: Money
    end_balance: Money


class MonthlyRow(BaseModel):
    """One display month of the projection schedule."""

    model_config = ConfigDict(frozen=True)

    label: str
    start_balance: Money
    contributions: Money
    interest: Money
    end_balance: Money


class InvestmentResult(BaseModel):
    """Projected balances, totals and schedules for one parameter set."""

    model_config = ConfigDict(frozen=True)

    starting_amount: Money
    years: int = Field(..., ge=0)
    annual_rate: Money
    compounding_frequency: str
    annual_contribution: Money
    contributions_per_year: int = Field(..., ge=0)
    contribute_at_beginning: bool

    final_balance: Money
    total_contributions: Money = Field(
        ..., description="Starting amount plus every contribution applied."
    )
    total_interest: Money
    yearly_rows: List[YearlyRow] = Field(default_factory=list)
    monthly_rows: List[MonthlyRow] = Field(default_factory=list)


class InvestmentSummary(BaseModel):
    """Display strings for the headline figures of a result."""

    end_balance: str
    starting_amount: str
    total_contributions: str
    total_interest: str


class InvestmentResponse(BaseModel):
    """Projection result with display helpers for the requested currency."""

    result: InvestmentResult
    currency: str
    currency_symbol: str
    summary: InvestmentSummary
