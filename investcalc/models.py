from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CompoundingFrequency(str, Enum):
    ANNUALLY = "Annually"
    QUARTERLY = "Quarterly"
    MONTHLY = "Monthly"
    WEEKLY = "Weekly"
    DAILY = "Daily"

    @property
    def periods_per_year(self) -> int:
        return PERIODS_PER_YEAR[self]


PERIODS_PER_YEAR = {
    CompoundingFrequency.ANNUALLY: 1,
    CompoundingFrequency.QUARTERLY: 4,
    CompoundingFrequency.MONTHLY: 12,
    CompoundingFrequency.WEEKLY: 52,
    CompoundingFrequency.DAILY: 365,
}


class ContributionTiming(str, Enum):
    BEGINNING = "beginning"
    END = "end"


class Granularity(str, Enum):
    YEARLY = "yearly"
    MONTHLY = "monthly"


class InvestmentParameters(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    startingAmount: Decimal = Field(ge=0)
    years: int = Field(ge=1, le=100)
    annualRate: Decimal = Field(ge=-100, le=1000)
    compoundingFrequency: CompoundingFrequency = CompoundingFrequency.MONTHLY
    annualContribution: Decimal = Field(default=Decimal("0"), ge=0)
    contributionsPerYear: int = Field(default=12, ge=0, le=365)
    contributionTiming: ContributionTiming = ContributionTiming.BEGINNING
    currency: str = Field(default="USD", min_length=1, max_length=8)

    @property
    def contribute_at_beginning(self) -> bool:
        return self.contributionTiming is ContributionTiming.BEGINNING


class ExportRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    parameters: InvestmentParameters
    granularity: Granularity = Granularity.YEARLY
    filename: str = Field(min_length=1, max_length=255)
