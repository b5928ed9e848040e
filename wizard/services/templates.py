"""Built-in trade templates scaled from the locked GFA."""

import math
from typing import Dict, List

from wizard.schemas.template import TemplateItem

TRADE_OPTIONS = {
    "flooring": "Flooring",
    "painting": "Painting",
    "drywall": "Drywall",
    "custom": "Custom",
}

TEAM_SIZE_OPTIONS = {
    "solo": {"label": "Solo", "description": "User/Client only"},
    "small": {"label": "1-2 Pros", "description": "Small Crew"},
    "team": {"label": "3-5 Pros", "description": "Team"},
    "large": {"label": "5+ Pros", "description": "Large Scale"},
}

WORK_TYPES = {
    "new_construction": "New Construction",
    "renovation": "Renovation",
    "addition": "Addition",
    "repair": "Repair",
    "demolition": "Demolition",
    "interior_finishing": "Interior Finishing",
    "exterior_finishing": "Exterior Finishing",
    "landscaping": "Landscaping",
    "electrical": "Electrical Work",
    "plumbing": "Plumbing",
    "hvac": "HVAC",
    "roofing": "Roofing",
    "foundation": "Foundation Work",
    "other": "Other",
}


def _item(item_id: str, name: str, category: str, quantity: float, unit: str, unit_price: float,
          apply_waste: bool) -> TemplateItem:
    return TemplateItem(
        id=item_id,
        name=name,
        category=category,
        base_quantity=quantity,
        quantity=quantity,
        unit=unit,
        unit_price=unit_price,
        total_price=quantity * unit_price,
        apply_waste=apply_waste,
    )


def _flooring(gfa: float) -> List[TemplateItem]:
    perimeter = round(4 * math.sqrt(gfa) * 0.85)
    return [
        _item("1", "Hardwood Flooring", "material", gfa, "sq ft", 8.50, True),
        _item("2", "Underlayment", "material", gfa, "sq ft", 0.75, True),
        _item("3", "Transition Strips", "material", math.ceil(gfa / 200), "pcs", 25, False),
        _item("4", "Installation Labor", "labor", gfa, "sq ft", 4.50, False),
        _item("5", "Baseboards", "material", perimeter, "ln ft", 3.25, True),
    ]


def _painting(gfa: float) -> List[TemplateItem]:
    return [
        _item("1", "Interior Paint (Premium)", "material", math.ceil(gfa / 350), "gal", 45, True),
        _item("2", "Primer", "material", math.ceil(gfa / 400), "gal", 35, True),
        _item("3", "Supplies (Brushes, Rollers, Tape)", "material", 1, "kit", 85, False),
        _item("4", "Surface Prep Labor", "labor", gfa, "sq ft", 0.75, False),
        _item("5", "Painting Labor", "labor", gfa, "sq ft", 2.50, False),
    ]


def _drywall(gfa: float) -> List[TemplateItem]:
    return [
        _item("1", "Drywall Sheets (4x8)", "material", math.ceil(gfa / 32), "sheets", 18, True),
        _item("2", "Joint Compound", "material", math.ceil(gfa / 500), "buckets", 22, True),
        _item("3", "Drywall Tape", "material", math.ceil(gfa / 100), "rolls", 8, True),
        _item("4", "Installation Labor", "labor", gfa, "sq ft", 2.25, False),
        _item("5", "Finishing Labor (Tape & Mud)", "labor", gfa, "sq ft", 1.75, False),
    ]


def _custom(gfa: float) -> List[TemplateItem]:
    return [
        _item("1", "Custom Material", "material", gfa, "sq ft", 5, True),
        _item("2", "Custom Labor", "labor", gfa, "sq ft", 3, False),
    ]


TEMPLATE_BUILDERS = {
    "flooring": _flooring,
    "painting": _painting,
    "drywall": _drywall,
    "custom": _custom,
}


def generate_template_items(trade: str, gfa_sqft: float) -> List[TemplateItem]:
    """Base-quantity items for a trade; unknown trades get the custom template."""
    builder = TEMPLATE_BUILDERS.get(trade, _custom)
    return builder(gfa_sqft)


def trade_label(trade: str) -> str:
    return TRADE_OPTIONS.get(trade, trade.replace("_", " ").title())
