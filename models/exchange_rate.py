"""
ExchangeRate model - conversion factors into the home currency (TWD).
"""

from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from models.asset import now_ms


class RateSource(BaseModel):
    """Provenance link reported by the market data backend. Advisory only."""
    model_config = ConfigDict(frozen=True)

    uri: str
    title: str = "Source"


class ExchangeRate(BaseModel):
    """
    Snapshot of the conversion factors to TWD.
    Replaced wholesale on every successful refresh, never patched in place.
    """
    model_config = ConfigDict(frozen=True)

    usd_to_twd: float = Field(gt=0)
    jpy_to_twd: float = Field(gt=0)
    last_update: int = Field(default_factory=now_ms)  # epoch ms
    sources: Tuple[RateSource, ...] = ()

    @classmethod
    def fallback(cls, usd_to_twd: float = 32.5, jpy_to_twd: float = 0.21) -> "ExchangeRate":
        """Rates used before the first successful fetch."""
        return cls(usd_to_twd=usd_to_twd, jpy_to_twd=jpy_to_twd)

    @classmethod
    def from_quote(cls, usd: float, jpy: float, sources: List[RateSource]) -> "ExchangeRate":
        """Build a fresh snapshot stamped now from a gateway quote."""
        return cls(usd_to_twd=usd, jpy_to_twd=jpy, sources=tuple(sources))
