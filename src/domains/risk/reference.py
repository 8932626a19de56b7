"""Versioned reference data: per-tour amount bands and the country allow-list.

These are data, not environment configuration. They are read from a YAML
document carrying a ``version`` key and can be reloaded while the process is
running.
"""

from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field, model_validator

logger = structlog.get_logger()


class AmountBand(BaseModel):
    min: float = Field(ge=0)
    max: float = Field(ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> "AmountBand":
        if self.min > self.max:
            raise ValueError(f"band min {self.min} exceeds max {self.max}")
        return self

    def contains(self, amount: float) -> bool:
        return self.min <= amount <= self.max


class ReferenceData(BaseModel):
    version: str
    allowed_countries: frozenset[str]
    tour_amount_bands: dict[str, AmountBand] = {}

    def band_for(self, tour_id: str) -> AmountBand | None:
        return self.tour_amount_bands.get(tour_id)

    def is_allowed_country(self, country_code: str) -> bool:
        return country_code.strip().upper() in self.allowed_countries


DEFAULT_REFERENCE = ReferenceData(
    version="builtin-1",
    allowed_countries=frozenset({"JP", "US", "GB", "CA", "AU", "NZ", "SG"}),
    tour_amount_bands={
        "morning-tour": AmountBand(min=5000, max=15000),
        "night-tour": AmountBand(min=8000, max=20000),
        "gion-tour": AmountBand(min=10000, max=25000),
        "uji-tour": AmountBand(min=15000, max=35000),
        "uji-walking-tour": AmountBand(min=12000, max=30000),
    },
)


def load_reference_data(path: str | Path) -> ReferenceData:
    """Parse a reference document. Raises on a malformed file."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    raw["allowed_countries"] = [c.upper() for c in raw.get("allowed_countries", [])]
    return ReferenceData.model_validate(raw)


class ReferenceDataProvider:
    """Holds the current reference data and swaps it on refresh."""

    def __init__(self, path: str | Path | None = None, initial: ReferenceData | None = None):
        self._path = Path(path) if path else None
        self._current = initial or DEFAULT_REFERENCE
        if initial is None and self._path is not None:
            self.refresh()

    @property
    def current(self) -> ReferenceData:
        return self._current

    def refresh(self) -> ReferenceData:
        """Reload from disk; keeps the previous version if the file is unusable."""
        if self._path is None:
            return self._current
        if not self._path.exists():
            logger.warning("reference_data_missing", path=str(self._path))
            return self._current

        try:
            loaded = load_reference_data(self._path)
        except (yaml.YAMLError, ValueError) as exc:
            logger.error(
                "reference_data_invalid",
                path=str(self._path),
                error=str(exc),
                kept_version=self._current.version,
            )
            return self._current

        if loaded.version != self._current.version:
            logger.info(
                "reference_data_loaded",
                path=str(self._path),
                version=loaded.version,
                previous_version=self._current.version,
                tours=len(loaded.tour_amount_bands),
            )
        self._current = loaded
        return loaded
