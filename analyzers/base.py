"""
Shared prompt, schema, errors and base class for spool label analyzers.
"""
from __future__ import annotations

import base64
import json
import logging
from abc import ABC, abstractmethod

from openspool import SpoolData, VALID_BRANDS, construct, normalize_brand

logger = logging.getLogger(__name__)

# ── Prompt + structured output schema ─────────────────────────────────────────

EXTRACTION_PROMPT = (
    "Extract the filament spool information from this label image. "
    "Return the filament type (e.g. PLA, PETG, ABS), the color as a hex code, "
    "the brand name, and the recommended min and max nozzle temperatures in Celsius."
)

EXTRACTED_FIELDS: tuple[str, ...] = ("type", "color_hex", "brand", "min_temp", "max_temp")

FILAMENT_SCHEMA: dict = {
    "name":   "filament_info",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "type": {
                "type": "string",
                "description": "Filament type, e.g. PLA, PETG, ABS, TPU",
            },
            "color_hex": {
                "type": "string",
                "description": "Single primary color as one hex code, e.g. #FF5733. Only return one color.",
            },
            "brand": {
                "type": "string",
                "description": "Brand name. Must be one of: " + ", ".join(VALID_BRANDS),
            },
            "min_temp": {
                "type": "integer",
                "description": "Minimum nozzle temperature in Celsius",
            },
            "max_temp": {
                "type": "integer",
                "description": "Maximum nozzle temperature in Celsius",
            },
        },
        "required": list(EXTRACTED_FIELDS),
        "additionalProperties": False,
    },
}


# ── Errors ────────────────────────────────────────────────────────────────────

class AnalysisError(Exception):
    """Base class for everything that can go wrong talking to the model."""


class UpstreamTransportFailure(AnalysisError):
    """The completion API could not be reached."""


class UpstreamAPIError(AnalysisError):
    """The completion API answered with a non-success status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"completion API error (status {status_code}): {body}")


class UpstreamEmptyResponse(AnalysisError):
    """The completion API returned no choices."""


class MalformedExtraction(AnalysisError):
    """The model's reply does not match the filament schema."""


# ── Helpers ───────────────────────────────────────────────────────────────────

def build_data_url(image_bytes: bytes, content_type: str) -> str:
    b64 = base64.b64encode(image_bytes).decode()
    return f"data:{content_type};base64,{b64}"


def parse_extraction(raw: str) -> dict:
    """
    Parse the schema-constrained JSON reply into a dict of the five fields.
    Raises MalformedExtraction on invalid JSON, missing fields or wrong types.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.error("Non-JSON extraction: %s", str(raw)[:300])
        raise MalformedExtraction(f"extraction is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedExtraction(f"extraction is not a JSON object: {type(data).__name__}")

    missing = [name for name in EXTRACTED_FIELDS if name not in data]
    if missing:
        raise MalformedExtraction(f"extraction missing fields: {', '.join(missing)}")

    for name in ("type", "color_hex", "brand"):
        if not isinstance(data[name], str):
            raise MalformedExtraction(f"{name} must be a string, got {data[name]!r}")
    # bool is an int subclass — JSON true/false is not a temperature
    for name in ("min_temp", "max_temp"):
        value = data[name]
        if isinstance(value, bool) or not isinstance(value, int):
            raise MalformedExtraction(f"{name} must be an integer, got {value!r}")

    return {name: data[name] for name in EXTRACTED_FIELDS}


def first_color(color_hex: str) -> str:
    """Keep only the first of a comma-separated list of colors, trimmed."""
    return color_hex.split(",", 1)[0].strip()


def spool_from_extraction(data: dict) -> SpoolData:
    """Clean up the model's fields and build a validated record."""
    return construct(
        data["type"],
        first_color(data["color_hex"]),
        normalize_brand(data["brand"]),
        data["min_temp"],
        data["max_temp"],
    )


# ── Abstract base ─────────────────────────────────────────────────────────────

class Analyzer(ABC):
    """Turns a spool label photo into a SpoolData."""

    name: str

    @abstractmethod
    async def analyze(self, image_bytes: bytes, content_type: str) -> SpoolData:
        """
        Run vision extraction on image_bytes.
        Raises AnalysisError subclasses or openspool.ValidationError.
        """
        ...
