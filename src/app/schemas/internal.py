"""Internal pipeline schemas.

These models are the canonical shapes flowing between the normalizer,
the catalog matcher and the orchestrator. Nothing downstream of the
normalizer branches on the ticket format.
"""

import enum
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TicketFormat(str, enum.Enum):
    LEGACY = "legacy"
    V2 = "v2"


class NormalizedLineItem(BaseModel):
    """One purchased line after normalization. Immutable."""

    model_config = ConfigDict(frozen=True)

    name: str
    raw_text: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal = Field(description="Total after discount")
    discount: Decimal = Decimal("0")
    confidence: float = 10
    format_version: TicketFormat = TicketFormat.LEGACY


class MatchRecord(BaseModel):
    """Outcome of matching one normalized line item against the catalog."""

    item: NormalizedLineItem
    product_id: UUID | None = None
    product_name: str | None = None
    strategy: str | None = None
    score: float = 0
    eligible_amount: Decimal = Decimal("0")
    forced: bool = False
    forced_by: str | None = None
    forced_note: str | None = None
    forced_at: str | None = None

    @property
    def is_matched(self) -> bool:
        return self.product_id is not None

    def to_storage(self) -> dict:
        """JSON-safe dict stored on the transaction row."""
        data = self.model_dump(mode="json")
        data["matched"] = self.is_matched
        return data

    @classmethod
    def from_storage(cls, data: dict) -> "MatchRecord":
        return cls.model_validate({k: v for k, v in data.items() if k != "matched"})


class MatchResult(BaseModel):
    """Aggregate matching outcome for one ticket."""

    records: list[MatchRecord] = Field(default_factory=list)
    total_matched: int = 0
    total_unmatched: int = 0
    match_rate: float = 0
    eligible_amount: Decimal = Decimal("0")

    @classmethod
    def from_records(cls, records: list[MatchRecord]) -> "MatchResult":
        """Build the aggregate; eligible amount is always the matched sum."""
        matched = [r for r in records if r.is_matched]
        eligible = sum((r.eligible_amount for r in matched), Decimal("0"))
        return cls(
            records=records,
            total_matched=len(matched),
            total_unmatched=len(records) - len(matched),
            match_rate=(len(matched) / len(records) * 100) if records else 0,
            eligible_amount=eligible,
        )
