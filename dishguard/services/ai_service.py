import json
import os
import re
from typing import Any, Dict, List, Optional
from openai import OpenAI
from dotenv import load_dotenv
from dishguard.core.catalog import CategoryCatalog, ThresholdRule
from dishguard.core.logging_config import get_logger
from dishguard.core.settings import AnalysisConfig, load_analysis_config

load_dotenv()

logger = get_logger(__name__)

_CODE_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class ClassificationService:
    """External dietary classification collaborator backed by an OpenAI chat model.

    The model's answers are non-deterministic and are never trusted as a source
    of truth; callers only rely on the returned JSON having the requested shape.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or load_analysis_config()
        api_key = os.getenv("OPENAI_API_KEY")
        if not self.config.enabled:
            logger.info("Dietary menu analysis disabled by configuration.")
            self.client = None
        elif not api_key:
            logger.warning("OPENAI_API_KEY not set. Dietary menu analysis will be unavailable.")
            self.client = None
        else:
            self.client = OpenAI(api_key=api_key, timeout=self.config.timeout_seconds)

    def classify_menu(
        self,
        dish_summaries: List[Dict[str, Any]],
        catalog: CategoryCatalog
    ) -> Optional[Dict[str, Any]]:
        """
        Ask the model which dishes comply with each dietary category in ONE call.

        Args:
            dish_summaries: Prepared dish summaries (see availability_aggregator.build_dish_summary)
            catalog: Categories to judge

        Returns:
            Parsed JSON object or None if the model is unavailable or the call fails
        """
        if not self.client:
            return None

        prompt = self._build_prompt(dish_summaries, catalog)
        try:
            response = self.client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {
                        "role": "system",
                        "content": (
                            "You are a dietary expert reviewing a restaurant menu. "
                            "Be strict about dietary requirements. Always return valid JSON."
                        )
                    },
                    {"role": "user", "content": prompt}
                ],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                response_format={"type": "json_object"}
            )
            content = response.choices[0].message.content or ""
            return self._parse_json(content)
        except Exception as e:
            logger.error(f"Dietary menu classification failed: {e}")
            return None

    def _build_prompt(self, dish_summaries: List[Dict[str, Any]], catalog: CategoryCatalog) -> str:
        categories = []
        for category in catalog:
            entry = {
                "id": category.id,
                "name": category.name,
                "type": category.type.value,
                "description": category.description
            }
            if isinstance(category.rule, ThresholdRule):
                entry["threshold"] = (
                    f"{category.rule.nutrient} < {category.rule.limit:g}{category.rule.unit}; "
                    "dishes without this value are NOT compliant"
                )
            categories.append(entry)

        categories_json = json.dumps(categories, indent=2, ensure_ascii=True)
        dishes_json = json.dumps(dish_summaries, indent=2, ensure_ascii=True)
        return f"""Analyze these menu dishes against every dietary category.

For each category and each dish, determine:
1. Is the dish naturally compliant?
2. Can it become compliant by removing or substituting ingredients?
3. What modifications are needed?

IMPORTANT:
- Consider hidden ingredients (e.g., butter in sauces, chicken broth, fish sauce)
- An ingredient marked "removable" CAN be removed
- An ingredient marked "substitutable" can only be swapped for one of its listed substitutes
- Allergens listed in "description_allergens" cannot be modified away
- A cross-contact risk on a step that is not "modifiable" cannot be modified away
- For health-focused categories use only the provided nutrition values

CATEGORIES:
{categories_json}

DISHES:
{dishes_json}

Return ONLY a JSON object with this structure, one entry per category id:
{{
  "categories": [
    {{
      "categoryId": "category-id",
      "status": "available" | "limited" | "unavailable",
      "totalAvailable": 0,
      "availableDishes": [
        {{"id": "dish-id", "name": "Dish Name", "requiresModification": false, "modifications": ["Remove X"]}}
      ],
      "reason": "Why nothing is available (optional)",
      "warning": "Caveat for the operator (optional)"
    }}
  ]
}}
"""

    def _parse_json(self, content: str) -> Optional[Dict[str, Any]]:
        text = content.strip()
        match = _CODE_BLOCK.search(text)
        if match:
            text = match.group(1).strip()
        try:
            result = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Dietary menu classification returned invalid JSON: {e}")
            return None
        if not isinstance(result, dict):
            logger.error("Dietary menu classification returned a non-object JSON payload")
            return None
        return result


classification_service = ClassificationService()
