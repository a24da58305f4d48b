from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from investcalc.core.accumulation import calculate, calculate_investment
from investcalc.domain.accumulation import (
    InvalidParameterError,
    accumulate,
    prepare_investment,
    resolve_periods_per_year,
    round_to_cents,
)
from investcalc.models import CompoundingFrequency, ContributionTiming, InvestmentParameters

TOLERANCE = Decimal("1e-20")


def assert_close(actual: Decimal, expected: Decimal, tolerance: Decimal = TOLERANCE) -> None:
    assert abs(actual - expected) <= tolerance, f"{actual} != {expected}"


def test_annual_end_of_period_schedule():
    """
    1000 at 5% compounded annually, 100 added at the end of each year:
    interest is earned on the balance before the contribution.
    """
    result = calculate(1000, 2, 5, "Annually", 100, 1, False)

    first, second = result.yearly_rows
    assert (first.year, first.start_balance, first.contributions, first.interest, first.end_balance) == (
        1,
        Decimal("1000"),
        Decimal("100"),
        Decimal("50"),
        Decimal("1150"),
    )
    assert second.start_balance == Decimal("1150")
    assert second.interest == Decimal("57.5")
    assert second.end_balance == Decimal("1307.5")

    assert result.final_balance == Decimal("1307.5")
    assert result.total_contributions == Decimal("1200")
    assert result.total_interest == Decimal("107.5")


def test_annual_beginning_of_period_schedule():
    """Contributions made at the start of the period earn that period's interest."""
    result = calculate(1000, 2, 5, "Annually", 100, 1, True)

    first, second = result.yearly_rows
    assert first.interest == Decimal("55")
    assert first.end_balance == Decimal("1155")
    assert second.interest == Decimal("62.75")
    assert second.end_balance == Decimal("1317.75")


def test_monthly_compounding_is_exact():
    result = calculate(1000, 1, 12, "Monthly", 0, 0, True)

    # 1000 * 1.01 ** 12 has 24 significant digits and is carried exactly
    assert result.final_balance == Decimal("1126.825030131969720661201")
    assert result.total_contributions == Decimal("1000")


def test_negative_rate_shrinks_balance():
    result = calculate(1000, 2, -10, CompoundingFrequency.ANNUALLY, 0, 0, False)

    assert [row.end_balance for row in result.yearly_rows] == [Decimal("900"), Decimal("810")]
    assert result.total_interest == Decimal("-190")


def test_total_loss_rate_empties_the_balance():
    result = calculate(1000, 3, -100, "Annually", 0, 0, True)

    assert result.yearly_rows[0].end_balance == 0
    assert result.final_balance == 0


def test_zero_rate_accumulates_contributions_only():
    result = calculate(500, 4, 0, "Weekly", 1200, 12, False)

    assert result.total_interest == 0
    assert_close(result.final_balance, Decimal("5300"))
    for row in result.yearly_rows:
        assert_close(row.contributions, Decimal("1200"))


@pytest.mark.parametrize("frequency", list(CompoundingFrequency))
@pytest.mark.parametrize("contributions_per_year", [0, 1, 5, 12, 26, 52, 100, 365])
def test_contribution_event_count(frequency, contributions_per_year):
    prepared = prepare_investment(1000, 3, 7, frequency, 3650, contributions_per_year, True)

    records = accumulate(prepared)

    assert len(records) == 3 * frequency.periods_per_year
    assert sum(record.contribution_events for record in records) == 3 * contributions_per_year


@pytest.mark.parametrize(
    "args",
    [
        (20000, 10, 7, "Monthly", 12000, 12, True),
        (1000, 5, 4.5, "Quarterly", 500, 7, False),
        (0, 3, 9, "Weekly", 2600, 26, True),
        (2500, 2, 6, "Daily", 1000, 12, False),
        (10000, 30, -2.5, "Annually", 300, 52, True),
        (100, 1, 1000, "Monthly", 100, 3, False),
    ],
)
def test_rows_reconcile_with_totals(args):
    starting_amount, years = Decimal(str(args[0])), args[1]
    result = calculate(*args)

    assert len(result.yearly_rows) == years
    assert len(result.monthly_rows) == years * 12

    for rows in (result.yearly_rows, result.monthly_rows):
        previous_end = starting_amount
        for row in rows:
            assert row.start_balance == previous_end
            assert_close(row.end_balance, row.start_balance + row.contributions + row.interest)
            previous_end = row.end_balance
        assert rows[-1].end_balance == result.final_balance

    assert_close(sum(row.interest for row in result.yearly_rows), result.total_interest)
    assert_close(
        sum(row.contributions for row in result.yearly_rows) + starting_amount,
        result.total_contributions,
    )


def test_fractional_contributions_sum_to_annual_total():
    result = calculate(1000, 2, 0, "Monthly", 100, 3, True)

    for row in result.yearly_rows:
        assert_close(row.contributions, Decimal("100"))
    assert_close(result.total_contributions, Decimal("1200"))


def test_unknown_frequency_defaults_to_monthly():
    fallback = calculate(1000, 2, 6, "Fortnightly", 1200, 12, True)
    monthly = calculate(1000, 2, 6, "Monthly", 1200, 12, True)

    assert fallback.compounding_frequency == "Fortnightly"
    assert fallback.final_balance == monthly.final_balance
    assert len(fallback.monthly_rows) == 24


def test_zero_years_returns_empty_schedules():
    result = calculate(1000, 0, 5, "Daily", 100, 12, True)

    assert result.yearly_rows == []
    assert result.monthly_rows == []
    assert result.final_balance == Decimal("1000")
    assert result.total_contributions == Decimal("1000")
    assert result.total_interest == 0


def test_float_inputs_are_taken_at_face_value():
    result = calculate(1000.10, 1, 0.1, "Annually", 0.0, 0, True)

    assert result.starting_amount == Decimal("1000.1")
    assert result.final_balance == Decimal("1001.1001")


@pytest.mark.parametrize(
    "name, expected",
    [("Annually", 1), ("quarterly", 4), (" Monthly ", 12), ("WEEKLY", 52), ("Daily", 365), ("", 12), (None, 12)],
)
def test_resolve_periods_per_year(name, expected):
    assert resolve_periods_per_year(name) == expected


def test_invalid_parameters_fail_fast():
    with pytest.raises(InvalidParameterError) as excinfo:
        calculate(-1, -2, -150, "Monthly", -5, 400, True)

    assert len(excinfo.value.errors) == 5
    assert any("contributions per year" in message for message in excinfo.value.errors)


def test_calculate_investment_uses_parameter_model():
    parameters = InvestmentParameters(
        startingAmount=Decimal("1000"),
        years=2,
        annualRate=Decimal("5"),
        compoundingFrequency=CompoundingFrequency.ANNUALLY,
        annualContribution=Decimal("100"),
        contributionsPerYear=1,
        contributionTiming=ContributionTiming.END,
        currency="EUR",
    )

    result = calculate_investment(parameters)

    assert result.final_balance == Decimal("1307.5")
    assert result.compounding_frequency == "Annually"
    assert result.contribute_at_beginning is False


def test_result_is_read_only():
    result = calculate(1000, 1, 5, "Annually", 0, 0, True)

    with pytest.raises(ValidationError):
        result.final_balance = Decimal("0")


@pytest.mark.parametrize(
    "value, expected",
    [
        (Decimal("1.005E+450"), Decimal("1.005E+450")),
        (Decimal("9" * 500 + ".995"), Decimal("1" + "0" * 500)),
        (Decimal("-0.004"), Decimal("0")),
    ],
)
def test_round_to_cents_handles_any_magnitude(value, expected):
    rounded = round_to_cents(value)

    assert rounded == expected
    assert rounded.as_tuple().exponent == -2


def test_century_of_daily_compounding_at_the_maximum_rate():
    result = calculate(1000, 100, 1000, "Daily", 0, 0, True)

    assert result.final_balance > Decimal("1e400")
    assert round_to_cents(result.final_balance) == round_to_cents(result.yearly_rows[-1].end_balance)
