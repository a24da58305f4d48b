"""Investment projection entry points."""

import logging
from decimal import Decimal
from typing import Union

from investcalc.domain.accumulation import (
    ENGINE_CONTEXT,
    Number,
    accumulate,
    prepare_investment,
)
from investcalc.domain.schedule import build_monthly_rows, build_yearly_rows
from investcalc.models import CompoundingFrequency, InvestmentParameters
from investcalc.schemas.accumulation import InvestmentResult

logger = logging.getLogger(__name__)


def calculate(
    starting_amount: Number,
    years: int,
    annual_rate_percent: Number,
    compounding_frequency: Union[str, CompoundingFrequency, None],
    annual_contribution: Number,
    contributions_per_year: int,
    contribute_at_beginning: bool,
) -> InvestmentResult:
    """Project a compounding balance and reduce it into yearly and monthly schedules.

    Raises InvalidParameterError when the inputs cannot describe a projection.
    """
    prepared = prepare_investment(
        starting_amount,
        years,
        annual_rate_percent,
        compounding_frequency,
        annual_contribution,
        contributions_per_year,
        contribute_at_beginning,
    )
    records = accumulate(prepared)

    total_contributions = prepared.starting_amount
    total_interest = Decimal(0)
    for record in records:
        total_contributions = ENGINE_CONTEXT.add(total_contributions, record.contribution)
        total_interest = ENGINE_CONTEXT.add(total_interest, record.interest)

    final_balance = records[-1].balance_after if records else prepared.starting_amount

    result = InvestmentResult(
        starting_amount=prepared.starting_amount,
        years=prepared.years,
        annual_rate=prepared.annual_rate,
        compounding_frequency=prepared.compounding_frequency,
        annual_contribution=prepared.annual_contribution,
        contributions_per_year=prepared.contributions_per_year,
        contribute_at_beginning=prepared.contribute_at_beginning,
        final_balance=final_balance,
        total_contributions=total_contributions,
        total_interest=total_interest,
        yearly_rows=build_yearly_rows(records, prepared.starting_amount, prepared.periods_per_year),
        monthly_rows=build_monthly_rows(records, prepared.starting_amount, prepared.periods_per_year),
    )
    logger.debug(
        "calculated %d years (%d yearly rows, %d monthly rows)",
        prepared.years,
        len(result.yearly_rows),
        len(result.monthly_rows),
    )
    return result


def calculate_investment(parameters: InvestmentParameters) -> InvestmentResult:
    """Run ``calculate`` for a validated parameter model."""
    return calculate(
        starting_amount=parameters.startingAmount,
        years=parameters.years,
        annual_rate_percent=parameters.annualRate,
        compounding_frequency=parameters.compoundingFrequency,
        annual_contribution=parameters.annualContribution,
        contributions_per_year=parameters.contributionsPerYear,
        contribute_at_beginning=parameters.contribute_at_beginning,
    )
