"""Tests for waste, markup and tax rollups."""

import pytest

from wizard.schemas.template import TemplateItem
from wizard.services.pricing import (
    add_item,
    apply_waste,
    compute_breakdown,
    delete_item,
    get_tax_region,
    update_item,
    validate_waste_percent,
    waste_quantity,
)


def make_item(item_id, name, category, base_quantity, unit_price, apply_waste=False):
    return TemplateItem(
        id=item_id,
        name=name,
        category=category,
        base_quantity=base_quantity,
        quantity=base_quantity,
        unit="sq ft",
        unit_price=unit_price,
        total_price=base_quantity * unit_price,
        apply_waste=apply_waste,
    )


@pytest.fixture
def two_items():
    return [
        make_item("1", "Hardwood Flooring", "material", 100, 8.50, apply_waste=True),
        make_item("2", "Installation Labor", "labor", 100, 4.50),
    ]


def test_waste_quantity_rounds_up():
    """Test waste quantities are ceilinged without float noise."""
    assert waste_quantity(100, 10) == 110
    assert waste_quantity(101, 10) == 112
    assert waste_quantity(100, 0) == 100


def test_grand_total_example(two_items):
    """Test the two-item template rollup with 10% waste and Ontario HST."""
    items = apply_waste(two_items, 10)
    breakdown = compute_breakdown(
        items,
        gfa_sqft=100,
        site_condition="clear",
        markup_percent=0,
        tax_region="ontario",
        demolition_unit_price=2.50,
    )

    assert breakdown.material_total == pytest.approx(935.0)
    assert breakdown.labor_total == pytest.approx(450.0)
    assert breakdown.subtotal == pytest.approx(1385.0)
    assert breakdown.net_total == pytest.approx(1385.0)
    assert breakdown.tax_rate == 0.13
    assert breakdown.tax_amount == pytest.approx(180.05)
    assert breakdown.grand_total == pytest.approx(1565.05)


def test_waste_is_idempotent(two_items):
    """Test re-applying the same waste gives the same items."""
    once = apply_waste(two_items, 10)
    twice = apply_waste(once, 10)

    assert [i.quantity for i in once] == [i.quantity for i in twice]
    assert [i.total_price for i in once] == [i.total_price for i in twice]


def test_waste_skips_labor_and_unflagged_materials():
    items = [
        make_item("1", "Transition Strips", "material", 8, 25),
        make_item("2", "Labor", "labor", 100, 4.50, apply_waste=True),
    ]
    result = apply_waste(items, 20)

    assert [i.quantity for i in result] == [8, 100]


def test_demolition_and_markup():
    """Test demolition cost and markup are pre-tax."""
    items = [make_item("1", "Custom Labor", "labor", 100, 3)]
    breakdown = compute_breakdown(items, 200, "demolition", 10, "ontario", 2.50)

    assert breakdown.demolition_cost == pytest.approx(500.0)
    assert breakdown.subtotal == pytest.approx(800.0)
    assert breakdown.markup_amount == pytest.approx(80.0)
    assert breakdown.net_total == pytest.approx(880.0)
    assert breakdown.grand_total == pytest.approx(994.4)


def test_tax_regions():
    assert get_tax_region("Quebec")["rate"] == 0.14975
    breakdown = compute_breakdown([make_item("1", "Labor", "labor", 1, 100)], 0, "clear", 0, "alberta", 2.5)
    assert breakdown.tax_name == "GST"
    assert breakdown.grand_total == pytest.approx(105.0)

    with pytest.raises(ValueError):
        get_tax_region("atlantis")


def test_validate_waste_percent():
    assert validate_waste_percent(15, 50) == 15
    with pytest.raises(ValueError):
        validate_waste_percent(-1, 50)
    with pytest.raises(ValueError):
        validate_waste_percent(51, 50)


def test_add_item_applies_waste(two_items):
    new = make_item("3", "Underlayment", "material", 50, 0.75, apply_waste=True)
    items = add_item(two_items, new, 10)

    assert len(items) == 3
    assert items[-1].quantity == 55
    assert items[-1].total_price == pytest.approx(41.25)
    assert len(two_items) == 2


def test_update_item_rederives_quantity(two_items):
    """Test a base quantity change goes back through the waste rule."""
    items = update_item(two_items, "1", {"base_quantity": 200}, 10)

    assert items[0].quantity == 220
    assert items[0].total_price == pytest.approx(1870.0)


def test_update_item_explicit_quantity_overrides(two_items):
    items = update_item(two_items, "1", {"quantity": 125}, 10)

    assert items[0].quantity == 125
    assert apply_waste(items, 10)[0].quantity == 110


def test_update_item_errors(two_items):
    with pytest.raises(KeyError):
        update_item(two_items, "missing", {"name": "x"}, 10)
    with pytest.raises(ValueError):
        update_item(two_items, "1", {"total_price": 1}, 10)


def test_delete_item(two_items):
    assert [i.id for i in delete_item(two_items, "1")] == ["2"]
    with pytest.raises(KeyError):
        delete_item(two_items, "missing")
