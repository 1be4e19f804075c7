"""
Schemas Module
==============

Immutable record types shared by the loader, the predictor and the reports.

Classes:
    - InputTriple: One reimbursement query (days, miles, receipts)
    - HistoricalRecord: A labelled historical case
    - Neighbor: Distance/output pair used while ranking
"""

from typing import NamedTuple, Tuple

from pydantic import BaseModel, ConfigDict, Field


class InputTriple(BaseModel):
    """The three inputs of a reimbursement request."""

    model_config = ConfigDict(frozen=True)

    trip_duration_days: int = Field(ge=0, strict=True)
    miles_traveled: float = Field(ge=0, strict=True)
    total_receipts_amount: float = Field(ge=0, strict=True)

    def as_tuple(self) -> Tuple[float, float, float]:
        return (
            float(self.trip_duration_days),
            self.miles_traveled,
            self.total_receipts_amount,
        )


class HistoricalRecord(BaseModel):
    """A historical case: the inputs and the amount actually reimbursed."""

    model_config = ConfigDict(frozen=True)

    input: InputTriple
    expected_output: float = Field(strict=True)


class Neighbor(NamedTuple):
    distance: float
    output: float
