from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from insight.ai.normalizer import LenientModel, clamp_number, coerce_choice, coerce_str

AuctionSource = Literal["ai", "secondary", "fallback"]

MAX_CPM = 100.0


class AuctionRequest(BaseModel):
    """Inbound auction request."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    profile_summary: str = Field(min_length=1, max_length=4000)
    country: str = "Unknown"
    country_code: str = Field(default="US", pattern=r"^[A-Za-z]{2}$")


class AuctionBid(LenientModel):
    bidder: str = Field(min_length=1)
    cpm: float = 0.0
    status: Literal["bid", "no-bid"] = "no-bid"
    reason: str = ""

    @field_validator("cpm", mode="before")
    @classmethod
    def _clamp_cpm(cls, value: Any) -> float:
        return round(clamp_number(value, 0.0, low=0.0, high=MAX_CPM), 2)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> str:
        return coerce_choice(value, ("bid", "no-bid"), "no-bid")

    @field_validator("reason", mode="before")
    @classmethod
    def _coerce_reason(cls, value: Any) -> str:
        return coerce_str(value, "")


class ValueFactor(LenientModel):
    factor: str = Field(min_length=1)
    impact: str = ""
    impact_value: float = 1.0
    description: str = ""

    @field_validator("impact_value", mode="before")
    @classmethod
    def _clamp_impact(cls, value: Any) -> float:
        return clamp_number(value, 1.0, low=0.0, high=10.0)

    @field_validator("impact", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return coerce_str(value, "")


def _valid_entries(value: Any, key: str) -> list[dict[str, Any]]:
    # Entries without their identifying string are dropped, not fatal
    if not isinstance(value, list):
        return []
    return [
        entry
        for entry in value
        if isinstance(entry, dict)
        and isinstance(entry.get(key), str)
        and entry[key].strip()
    ]


class AuctionResult(LenientModel):
    """Simulated RTB auction. Empty ``bids`` tells the caller to estimate locally."""

    REQUIRED: ClassVar[dict[str, tuple[type, ...]]] = {"bids": (list,)}

    bids: list[AuctionBid] = Field(default_factory=list)
    value_factors: list[ValueFactor] = Field(default_factory=list)
    source: AuctionSource = "ai"

    @field_validator("bids", mode="before")
    @classmethod
    def _drop_bad_bids(cls, value: Any) -> list[dict[str, Any]]:
        return _valid_entries(value, "bidder")

    @field_validator("value_factors", mode="before")
    @classmethod
    def _drop_bad_factors(cls, value: Any) -> list[dict[str, Any]]:
        return _valid_entries(value, "factor")

    @field_validator("source", mode="before")
    @classmethod
    def _coerce_source(cls, value: Any) -> str:
        return coerce_choice(value, ("ai", "secondary", "fallback"), "ai")

    def is_usable(self) -> bool:
        return bool(self.bids)

    @classmethod
    def empty(cls) -> "AuctionResult":
        return cls(bids=[], value_factors=[], source="fallback")
