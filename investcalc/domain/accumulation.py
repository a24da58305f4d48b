from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Context, Decimal
from fractions import Fraction
from typing import List, Union

from investcalc.models import CompoundingFrequency

logger = logging.getLogger(__name__)

# 50 significant digits leaves room for 28 fractional rate digits on large balances.
ENGINE_CONTEXT = Context(prec=50, rounding=ROUND_HALF_EVEN)
RATE_QUANTUM = Decimal("1e-28")
CENT = Decimal("0.01")
DEFAULT_PERIODS_PER_YEAR = 12
MAX_CONTRIBUTIONS_PER_YEAR = 365

Number = Union[Decimal, int, float, str]


class InvalidParameterError(ValueError):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class PeriodRecord:
    period: int
    balance_before: Decimal
    contribution: Decimal
    contribution_events: int
    interest: Decimal
    balance_after: Decimal


@dataclass(frozen=True)
class PreparedInvestment:
    starting_amount: Decimal
    years: int
    annual_rate: Decimal
    compounding_frequency: str
    periods_per_year: int
    periodic_rate: Decimal
    annual_contribution: Decimal
    contributions_per_year: int
    contribution_per_event: Decimal
    contribute_at_beginning: bool

    @property
    def total_periods(self) -> int:
        return self.years * self.periods_per_year


class ContributionTracker:
    """Spreads a yearly number of contribution events over compounding periods.

    Every period adds ``contributions_per_year / periods_per_year`` to a carry;
    each whole unit in the carry is one contribution event for that period.
    The carry is an exact fraction, so a year always yields exactly
    ``contributions_per_year`` events whatever the two frequencies are.
    """

    def __init__(self, contributions_per_year: int, periods_per_year: int):
        if periods_per_year <= 0:
            raise InvalidParameterError(["periods per year must be positive"])
        self._step = Fraction(contributions_per_year, periods_per_year)
        self._carry = Fraction(0)

    @property
    def carry(self) -> Fraction:
        return self._carry

    def next_period(self) -> int:
        self._carry += self._step
        events = 0
        while self._carry >= 1:
            self._carry -= 1
            events += 1
        return events


def as_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_to_cents(value: Decimal) -> Decimal:
    # precision must cover every integer digit plus the cents
    context = Context(prec=max(28, value.adjusted() + 4), rounding=ROUND_HALF_UP)
    rounded = value.quantize(CENT, context=context)
    # no negative zero
    return rounded if rounded else Decimal("0.00")


def resolve_periods_per_year(compounding_frequency: Union[str, CompoundingFrequency, None]) -> int:
    """Map a compounding frequency name to periods per year, defaulting to monthly."""
    if isinstance(compounding_frequency, CompoundingFrequency):
        return compounding_frequency.periods_per_year
    for frequency in CompoundingFrequency:
        if compounding_frequency and frequency.value.lower() == str(compounding_frequency).strip().lower():
            return frequency.periods_per_year
    logger.warning(
        "unknown compounding frequency %r, using %d periods per year",
        compounding_frequency,
        DEFAULT_PERIODS_PER_YEAR,
    )
    return DEFAULT_PERIODS_PER_YEAR


def prepare_investment(
    starting_amount: Number,
    years: int,
    annual_rate_percent: Number,
    compounding_frequency: Union[str, CompoundingFrequency, None],
    annual_contribution: Number,
    contributions_per_year: int,
    contribute_at_beginning: bool,
) -> PreparedInvestment:
    starting = as_decimal(starting_amount)
    rate = as_decimal(annual_rate_percent)
    contribution = as_decimal(annual_contribution)

    errors: List[str] = []
    if starting < 0:
        errors.append("starting amount must not be negative")
    if years < 0:
        errors.append("years must not be negative")
    if rate < -100:
        errors.append("annual rate must be at least -100 percent")
    if contribution < 0:
        errors.append("annual contribution must not be negative")
    if not 0 <= contributions_per_year <= MAX_CONTRIBUTIONS_PER_YEAR:
        errors.append(f"contributions per year must be between 0 and {MAX_CONTRIBUTIONS_PER_YEAR}")

    if years == 0:
        periods_per_year = DEFAULT_PERIODS_PER_YEAR
    else:
        periods_per_year = resolve_periods_per_year(compounding_frequency)
    if periods_per_year <= 0:
        errors.append("periods per year must be positive")

    if errors:
        raise InvalidParameterError(errors)

    periodic_rate = ENGINE_CONTEXT.divide(rate, Decimal(100 * periods_per_year)).quantize(
        RATE_QUANTUM, context=ENGINE_CONTEXT
    )
    if contributions_per_year > 0:
        per_event = ENGINE_CONTEXT.divide(contribution, Decimal(contributions_per_year))
    else:
        per_event = Decimal(0)

    if isinstance(compounding_frequency, CompoundingFrequency):
        frequency_name = compounding_frequency.value
    else:
        frequency_name = str(compounding_frequency or "")

    return PreparedInvestment(
        starting_amount=starting,
        years=years,
        annual_rate=rate,
        compounding_frequency=frequency_name,
        periods_per_year=periods_per_year,
        periodic_rate=periodic_rate,
        annual_contribution=contribution,
        contributions_per_year=contributions_per_year,
        contribution_per_event=per_event,
        contribute_at_beginning=contribute_at_beginning,
    )


def accumulate(prepared: PreparedInvestment) -> List[PeriodRecord]:
    """Advance the balance one compounding period at a time.

    Order of operations (per period):
      1) Ask the tracker how many contribution events land in this period.
      2) Beginning timing: add the contribution, then earn interest on the
         new balance. End timing: earn interest first, then add it.
      3) Record the period.
    """
    ctx = ENGINE_CONTEXT
    tracker = ContributionTracker(prepared.contributions_per_year, prepared.periods_per_year)
    balance = prepared.starting_amount
    records: List[PeriodRecord] = []

    for period in range(1, prepared.total_periods + 1):
        before = balance
        events = tracker.next_period()
        contribution = ctx.multiply(prepared.contribution_per_event, Decimal(events)) if events else Decimal(0)

        if prepared.contribute_at_beginning:
            balance = ctx.add(balance, contribution)
            interest = ctx.multiply(balance, prepared.periodic_rate)
            balance = ctx.add(balance, interest)
        else:
            interest = ctx.multiply(balance, prepared.periodic_rate)
            balance = ctx.add(balance, interest)
            balance = ctx.add(balance, contribution)

        records.append(
            PeriodRecord(
                period=period,
                balance_before=before,
                contribution=contribution,
                contribution_events=events,
                interest=interest,
                balance_after=balance,
            )
        )

    logger.debug(
        "accumulated %d periods at %s per period, final balance %s",
        len(records),
        prepared.periodic_rate,
        balance,
    )
    return records
