"""AI trade template generation with lookup-table fallback."""

import json
import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from wizard.config import settings
from wizard.schemas.template import GeneratedTemplate, TemplateItem
from wizard.services.llm_client import LLMClient, extract_json
from wizard.services.templates import generate_template_items

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a construction cost estimator AI. Generate a detailed material and labor template for a construction project.

RULES:
- Return ONLY a valid JSON object, no markdown, no explanation
- All prices in CAD
- Include realistic unit prices for Ontario, Canada market
- Apply quantities based on the GFA provided
- Include both materials and labor items
- Each item must have: name, category (material or labor), quantity, unit, unitPrice
- Include 5-8 items total
- Be specific to the trade requested

JSON format:
{
  "items": [
    { "name": "Item Name", "category": "material", "quantity": 100, "unit": "sq ft", "unitPrice": 8.50 },
    { "name": "Labor Item", "category": "labor", "quantity": 100, "unit": "sq ft", "unitPrice": 4.50 }
  ],
  "notes": "Brief note about the estimate"
}"""


class TemplateGenerationError(Exception):
    """Raised when the AI template cannot be produced or parsed."""


class TemplateGenerator:
    """Generates trade templates through the LLM."""

    MODEL = settings.TEMPLATE_MODEL

    def __init__(self, llm_client: Optional[LLMClient] = None):
        """Initialize generator."""
        self.llm = llm_client or LLMClient()

    def _build_prompt(
        self,
        trade: str,
        gfa_sqft: float,
        project_name: Optional[str],
        location: Optional[str],
        work_type: Optional[str],
    ) -> str:
        return f"""Generate a construction template for:
- Trade: {trade}
- Gross Floor Area: {gfa_sqft:g} sq ft
- Project: {project_name or 'Construction Project'}
- Location: {location or 'Ontario, Canada'}
- Work Type: {work_type or 'General'}

Provide accurate material quantities and current Ontario market labor rates for this {trade} project."""

    def _to_items(self, template: GeneratedTemplate) -> List[TemplateItem]:
        items = []
        for index, generated in enumerate(template.items, start=1):
            items.append(TemplateItem(
                id=f"ai_{index}",
                name=generated.name,
                category=generated.category,
                base_quantity=generated.quantity,
                quantity=generated.quantity,
                unit=generated.unit,
                unit_price=generated.unitPrice,
                total_price=generated.quantity * generated.unitPrice,
                apply_waste=generated.category == "material",
            ))
        return items

    def generate(
        self,
        trade: str,
        gfa_sqft: float,
        project_name: Optional[str] = None,
        location: Optional[str] = None,
        work_type: Optional[str] = None,
    ) -> List[TemplateItem]:
        """
        Ask the model for an itemized template.

        Returns:
            Base-quantity template items (waste not yet applied)

        Raises:
            TemplateGenerationError: On transport, parse or validation failure
        """
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": self._build_prompt(trade, gfa_sqft, project_name, location, work_type)},
        ]

        try:
            response = self.llm.chat_completion(
                model=self.MODEL,
                messages=messages,
                temperature=0.3,
                max_tokens=2000,
                json_mode=True,
            )
            template = GeneratedTemplate(**extract_json(response))
        except (httpx.HTTPError, ValueError, ValidationError, json.JSONDecodeError, TypeError) as e:
            raise TemplateGenerationError(f"AI template generation failed for {trade}: {e}") from e

        if not template.items:
            raise TemplateGenerationError(f"AI template for {trade} contained no items")

        logger.info(f"Generated {len(template.items)} AI template items for {trade}")
        return self._to_items(template)


def build_template(
    trade: str,
    gfa_sqft: float,
    source: str = "table",
    allow_fallback: bool = True,
    generator: Optional[TemplateGenerator] = None,
    project_name: Optional[str] = None,
    location: Optional[str] = None,
    work_type: Optional[str] = None,
) -> List[TemplateItem]:
    """
    Produce base-quantity items from the lookup table or the AI generator.

    Raises:
        TemplateGenerationError: If AI generation fails and fallback is disabled
    """
    if source != "ai":
        return generate_template_items(trade, gfa_sqft)

    generator = generator or TemplateGenerator()
    try:
        return generator.generate(trade, gfa_sqft, project_name, location, work_type)
    except TemplateGenerationError as e:
        if not allow_fallback:
            raise
        logger.warning(f"{e}; falling back to built-in {trade} template")
        return generate_template_items(trade, gfa_sqft)
