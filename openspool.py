"""
openspool.py — the OpenSpool record written to NFC tags.

Printer firmware reading the tag expects this exact envelope:
  {"protocol": "openspool", "version": "1.0", "type": ..., "color_hex": ...,
   "brand": ..., "min_temp": ..., "max_temp": ...}

Everything the vision model returns passes through construct() before it
leaves the server, so a record that exists is always a valid one.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass

PROTOCOL = "openspool"
VERSION  = "1.0"

# Brands the firmware knows about — anything else is written as Generic
VALID_BRANDS: tuple[str, ...] = ("Generic", "Overture", "PolyLite", "eSun", "PolyTerra")

_HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


class ValidationError(ValueError):
    """A spool record field breaks one of the envelope rules."""


def normalize_brand(brand: str | None) -> str:
    """Map *brand* onto its canonical spelling, or "Generic" if unknown."""
    wanted = (brand or "").casefold()
    for known in VALID_BRANDS:
        if wanted == known.casefold():
            return known
    return "Generic"


@dataclass(frozen=True)
class SpoolData:
    protocol:  str
    version:   str
    type:      str
    color_hex: str
    brand:     str
    min_temp:  int
    max_temp:  int

    def validate(self) -> None:
        """Raise ValidationError for the first rule this record breaks."""
        if self.protocol != PROTOCOL:
            raise ValidationError(f"invalid protocol: {self.protocol!r}")
        if self.version != VERSION:
            raise ValidationError(f"invalid version: {self.version!r}")
        if not self.type:
            raise ValidationError("type is required")
        if not isinstance(self.color_hex, str) or not _HEX_COLOR_RE.fullmatch(self.color_hex):
            raise ValidationError(f"invalid color_hex: {self.color_hex!r}")
        if not self.brand:
            raise ValidationError("brand is required")
        if self.min_temp <= 0:
            raise ValidationError("min_temp must be positive")
        if self.max_temp <= 0:
            raise ValidationError("max_temp must be positive")
        if self.min_temp > self.max_temp:
            raise ValidationError(
                f"min_temp ({self.min_temp}) must not exceed max_temp ({self.max_temp})"
            )

    def to_dict(self) -> dict:
        """JSON wire form, key order matching the tag layout."""
        return asdict(self)


def construct(
    filament_type: str,
    color_hex: str,
    brand: str,
    min_temp: int,
    max_temp: int,
) -> SpoolData:
    """Build a validated SpoolData. Raises ValidationError on bad input."""
    spool = SpoolData(
        protocol=PROTOCOL,
        version=VERSION,
        type=filament_type,
        color_hex=color_hex,
        brand=brand,
        min_temp=min_temp,
        max_temp=max_temp,
    )
    spool.validate()
    return spool


def parse_temp(value: str) -> int:
    """
    Parse a temperature like "210" (°C). Raises ValidationError if not a whole number.

    Not used by the HTTP path (the schema already types temperatures as integers);
    kept for tag-writing tools that read temperatures from text, e.g. a CLI or CSV import.
    """
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"invalid temperature {value!r}") from exc
