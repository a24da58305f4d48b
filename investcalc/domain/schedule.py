from __future__ import annotations

from decimal import Decimal
from typing import List, Sequence

from investcalc.domain.accumulation import ENGINE_CONTEXT, PeriodRecord
from investcalc.schemas.accumulation import MonthlyRow, YearlyRow

MONTHS_PER_YEAR = 12


def month_label(month_number: int) -> str:
    """Label for the 1-based display month across the whole horizon, e.g. ``Y2-M3``."""
    year = (month_number - 1) // MONTHS_PER_YEAR + 1
    month = (month_number - 1) % MONTHS_PER_YEAR + 1
    return f"Y{year}-M{month}"


def display_month(period: int, periods_per_year: int) -> int:
    # floor(period / periods_per_year * 12) without leaving integer arithmetic
    return period * MONTHS_PER_YEAR // periods_per_year


def build_yearly_rows(
    records: Sequence[PeriodRecord],
    starting_amount: Decimal,
    periods_per_year: int,
) -> List[YearlyRow]:
    ctx = ENGINE_CONTEXT
    rows: List[YearlyRow] = []
    start = starting_amount
    contributions = Decimal(0)
    interest = Decimal(0)

    for index, record in enumerate(records):
        contributions = ctx.add(contributions, record.contribution)
        interest = ctx.add(interest, record.interest)

        if record.period % periods_per_year == 0 or index == len(records) - 1:
            rows.append(
                YearlyRow(
                    year=len(rows) + 1,
                    start_balance=start,
                    contributions=contributions,
                    interest=interest,
                    end_balance=record.balance_after,
                )
            )
            start = record.balance_after
            contributions = Decimal(0)
            interest = Decimal(0)

    return rows


def build_monthly_rows(
    records: Sequence[PeriodRecord],
    starting_amount: Decimal,
    periods_per_year: int,
) -> List[MonthlyRow]:
    """Reduce the period trace onto a twelve-months-per-year display grid.

    A period belongs to the display month ``floor(period * 12 / periods_per_year)``
    it reaches. Weekly and daily periods are pooled until that month advances.
    Annual and quarterly periods span several months: the months they pass over
    are emitted as idle rows at the running balance, and the period's activity
    is booked in the month where it closes.
    """
    ctx = ENGINE_CONTEXT
    rows: List[MonthlyRow] = []
    closed_months = 0
    start = starting_amount
    contributions = Decimal(0)
    interest = Decimal(0)

    for record in records:
        contributions = ctx.add(contributions, record.contribution)
        interest = ctx.add(interest, record.interest)

        reached = display_month(record.period, periods_per_year)
        if reached <= closed_months:
            continue

        for idle_month in range(closed_months + 1, reached):
            rows.append(
                MonthlyRow(
                    label=month_label(idle_month),
                    start_balance=start,
                    contributions=Decimal(0),
                    interest=Decimal(0),
                    end_balance=start,
                )
            )

        rows.append(
            MonthlyRow(
                label=month_label(reached),
                start_balance=start,
                contributions=contributions,
                interest=interest,
                end_balance=record.balance_after,
            )
        )
        closed_months = reached
        start = record.balance_after
        contributions = Decimal(0)
        interest = Decimal(0)

    return rows
