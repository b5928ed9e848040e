"""Template item and cost schemas."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class TemplateItem(BaseModel):
    """One material or labor line of a trade template."""

    id: str
    name: str
    category: Literal["material", "labor"]
    base_quantity: float
    quantity: float  # After waste factor
    unit: str
    unit_price: float
    total_price: float
    apply_waste: bool = False


class CostBreakdown(BaseModel):
    """Derived totals, recomputed from the items on every mutation."""

    material_total: float
    labor_total: float
    demolition_cost: float
    subtotal: float
    markup_percent: float
    markup_amount: float
    net_total: float  # Pre-tax; this is the value carried by TEMPLATE_LOCK
    tax_region: str
    tax_name: str
    tax_rate: float
    tax_amount: float
    grand_total: float


class StartTemplateRequest(BaseModel):
    """Generate the working template for a trade."""

    trade: str
    source: Literal["table", "ai"] = "table"
    allow_fallback: bool = True


class ItemCreate(BaseModel):
    """New template line."""

    name: str = "New Item"
    category: Literal["material", "labor"] = "material"
    base_quantity: float = Field(default=1, ge=0)
    unit: str = "pcs"
    unit_price: float = Field(default=0, ge=0)
    apply_waste: bool = True


class ItemUpdate(BaseModel):
    """Partial edit of a template line."""

    name: Optional[str] = None
    category: Optional[Literal["material", "labor"]] = None
    base_quantity: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = None
    unit_price: Optional[float] = Field(default=None, ge=0)
    apply_waste: Optional[bool] = None


class WasteRequest(BaseModel):
    """Change the waste percentage."""

    waste_percent: int


class MarkupRequest(BaseModel):
    """Change the markup percentage."""

    markup_percent: float = Field(ge=0)


class SiteConditionRequest(BaseModel):
    """Change the site condition."""

    site_condition: Literal["clear", "demolition"]


class LockTemplateRequest(BaseModel):
    """Lock the working template into the ledger."""

    expected_version: Optional[int] = None
    source_message_id: Optional[str] = None


class TemplateState(BaseModel):
    """Working template plus its current rollup."""

    project_id: str
    trade: Optional[str]
    waste_percent: int
    markup_percent: float
    site_condition: str
    gfa_sqft: float
    items: List[TemplateItem]
    breakdown: CostBreakdown


class GeneratedItem(BaseModel):
    """Item shape returned by the AI template generator."""

    name: str
    category: Literal["material", "labor"]
    quantity: float = Field(ge=0)
    unit: str
    unitPrice: float = Field(ge=0)


class GeneratedTemplate(BaseModel):
    """Output of the AI template generator."""

    items: List[GeneratedItem]
    notes: Optional[str] = None
