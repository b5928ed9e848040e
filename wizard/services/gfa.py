"""Gross floor area input parsing and unit normalization."""

import math
import re
from typing import Optional

from pydantic import BaseModel

from wizard.schemas.citation import CitationDraft, CitationType

# Conversion factors to square feet, checked in order
UNIT_CONVERSIONS = {
    "sqft": 1.0,
    "sq ft": 1.0,
    "sqm": 10.7639,
    "sq m": 10.7639,
    "m2": 10.7639,
    "m²": 10.7639,
    "sqyd": 9.0,
    "sq yd": 9.0,
}

_GFA_PATTERN = re.compile(r"^([\d,.]+)\s*(.*)$")


class GFAReading(BaseModel):
    """Parsed GFA input."""

    value: float
    original_unit: str
    sqft_value: int


def parse_gfa_input(text: str) -> Optional[GFAReading]:
    """
    Parse free text like '1500 sq ft' or '140 sqm' into square feet.

    Args:
        text: Raw user input

    Returns:
        GFAReading, or None for non-positive or unparseable numbers.
        A unit that matches no known key converts 1:1 as square feet.
    """
    match = _GFA_PATTERN.match(text.strip().lower())
    if not match:
        return None

    try:
        value = float(match.group(1).replace(",", ""))
    except ValueError:
        return None
    if value <= 0:
        return None

    unit_part = re.sub(r"\s+", "", match.group(2)) or "sqft"

    factor = 1.0
    detected_unit = "sq ft"
    for unit, unit_factor in UNIT_CONVERSIONS.items():
        if unit.replace(" ", "") in unit_part:
            factor = unit_factor
            detected_unit = unit
            break

    return GFAReading(
        value=value,
        original_unit=detected_unit,
        sqft_value=int(math.floor(value * factor + 0.5)),
    )


def build_gfa_citation(
    reading: GFAReading,
    original_input: str,
    source_message_id: Optional[str] = None,
) -> CitationDraft:
    """Build the GFA_LOCK citation for a parsed reading."""
    return CitationDraft(
        cite_type=CitationType.GFA_LOCK,
        question_key="gfa",
        answer=f"{reading.sqft_value:,} sq ft",
        value=reading.sqft_value,
        metadata={
            "gfa_value": reading.sqft_value,
            "gfa_unit": "sqft",
            "original_input": original_input,
            "original_unit": reading.original_unit,
        },
        source_message_id=source_message_id,
    )
