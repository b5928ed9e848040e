"""Waste, markup and tax rollups over template items."""

import logging
import math
import uuid
from typing import Any, Dict, List

from wizard.schemas.template import CostBreakdown, TemplateItem

logger = logging.getLogger(__name__)

# Regional sales tax
TAX_REGIONS: Dict[str, Dict[str, Any]] = {
    "ontario": {"name": "HST", "rate": 0.13, "components": [("HST", 0.13)]},
    "quebec": {"name": "GST + QST", "rate": 0.14975, "components": [("GST", 0.05), ("QST", 0.09975)]},
    "bc": {"name": "GST + PST", "rate": 0.12, "components": [("GST", 0.05), ("PST", 0.07)]},
    "alberta": {"name": "GST", "rate": 0.05, "components": [("GST", 0.05)]},
}

EDITABLE_FIELDS = {"name", "category", "base_quantity", "quantity", "unit", "unit_price", "apply_waste"}


def _money(amount: float) -> float:
    return round(amount, 2)


def waste_quantity(base_quantity: float, waste_percent: float) -> int:
    """Quantity after waste: ceil(base * (1 + w/100))."""
    # 100 * 1.1 is 110.00000000000001 in floating point
    return math.ceil(round(base_quantity * (1 + waste_percent / 100), 6))


def applies_waste(item: TemplateItem) -> bool:
    return item.apply_waste and item.category == "material"


def reprice(item: TemplateItem) -> TemplateItem:
    """Return the item with total_price = quantity * unit_price."""
    return item.model_copy(update={"total_price": item.quantity * item.unit_price})


def apply_waste(items: List[TemplateItem], waste_percent: float) -> List[TemplateItem]:
    """
    Apply a waste percentage to waste-flagged material items.

    Quantities are derived from base_quantity, so re-applying the same
    percentage gives the same result.
    """
    result = []
    for item in items:
        if applies_waste(item):
            quantity = waste_quantity(item.base_quantity, waste_percent)
            item = item.model_copy(update={"quantity": quantity})
        result.append(reprice(item))
    return result


def validate_waste_percent(waste_percent: int, maximum: int) -> int:
    """Reject waste percentages outside 0..maximum."""
    if waste_percent < 0 or waste_percent > maximum:
        raise ValueError(f"Waste percent must be between 0 and {maximum}")
    return waste_percent


def new_item_id() -> str:
    return f"item_{uuid.uuid4().hex[:10]}"


def add_item(items: List[TemplateItem], item: TemplateItem, waste_percent: float) -> List[TemplateItem]:
    """Append an item, deriving its quantity and total."""
    if applies_waste(item):
        item = item.model_copy(update={"quantity": waste_quantity(item.base_quantity, waste_percent)})
    return list(items) + [reprice(item)]


def update_item(
    items: List[TemplateItem],
    item_id: str,
    changes: Dict[str, Any],
    waste_percent: float,
) -> List[TemplateItem]:
    """
    Edit one item and recompute its derived fields.

    A base_quantity, category or apply_waste change re-derives quantity via
    the waste rule; an explicit quantity overrides it until the next waste
    re-application.

    Raises:
        KeyError: If no item has item_id
        ValueError: If a change names a field that cannot be edited
    """
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot edit fields: {sorted(unknown)}")

    found = False
    result = []
    for item in items:
        if item.id != item_id:
            result.append(item)
            continue

        found = True
        updated = item.model_copy(update=changes)
        if "quantity" not in changes:
            if applies_waste(updated):
                updated = updated.model_copy(
                    update={"quantity": waste_quantity(updated.base_quantity, waste_percent)}
                )
            elif {"base_quantity", "category", "apply_waste"} & set(changes):
                updated = updated.model_copy(update={"quantity": updated.base_quantity})
        result.append(reprice(updated))

    if not found:
        raise KeyError(item_id)
    return result


def delete_item(items: List[TemplateItem], item_id: str) -> List[TemplateItem]:
    """Remove an item. Raises KeyError if absent."""
    result = [item for item in items if item.id != item_id]
    if len(result) == len(items):
        raise KeyError(item_id)
    return result


def get_tax_region(region: str) -> Dict[str, Any]:
    """Look up a tax region. Raises ValueError for unknown regions."""
    config = TAX_REGIONS.get(region.lower())
    if config is None:
        raise ValueError(f"Unknown tax region: {region}")
    return config


def compute_breakdown(
    items: List[TemplateItem],
    gfa_sqft: float,
    site_condition: str,
    markup_percent: float,
    tax_region: str,
    demolition_unit_price: float,
) -> CostBreakdown:
    """
    Recompute every derived total from the current items and parameters.

    Args:
        items: Current template items
        gfa_sqft: Locked gross floor area
        site_condition: 'clear' or 'demolition'
        markup_percent: Markup applied on the subtotal
        tax_region: Key of TAX_REGIONS
        demolition_unit_price: $/sq ft demolition rate

    Returns:
        CostBreakdown; net_total is the pre-tax figure
    """
    tax = get_tax_region(tax_region)

    material_total = sum(i.quantity * i.unit_price for i in items if i.category == "material")
    labor_total = sum(i.quantity * i.unit_price for i in items if i.category == "labor")
    demolition_cost = gfa_sqft * demolition_unit_price if site_condition == "demolition" else 0.0

    subtotal = material_total + labor_total + demolition_cost
    markup_amount = subtotal * markup_percent / 100
    net_total = subtotal + markup_amount
    tax_amount = net_total * tax["rate"]
    grand_total = net_total + tax_amount

    return CostBreakdown(
        material_total=_money(material_total),
        labor_total=_money(labor_total),
        demolition_cost=_money(demolition_cost),
        subtotal=_money(subtotal),
        markup_percent=markup_percent,
        markup_amount=_money(markup_amount),
        net_total=_money(net_total),
        tax_region=tax_region.lower(),
        tax_name=tax["name"],
        tax_rate=tax["rate"],
        tax_amount=_money(tax_amount),
        grand_total=_money(grand_total),
    )
