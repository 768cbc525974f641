import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .base_agent import BaseAgent
from ..schemas.hospital import ConditionCatalogEntry, HospitalRecord
from ..services.llm_service import LLMUnavailable

logger = logging.getLogger(__name__)

INTENT_FIELDS = (
    "condition",
    "budget_min",
    "budget_max",
    "preferred_location",
    "preferred_country",
    "timeline",
    "travel_type",
)

AMOUNT_UNITS = {
    "k": 1_000,
    "lakh": 100_000, "lakhs": 100_000, "lac": 100_000, "lacs": 100_000,
    "crore": 10_000_000, "crores": 10_000_000, "cr": 10_000_000,
    "million": 1_000_000, "mn": 1_000_000,
}

# Amounts below this are taken to be counts/durations, not budgets
MIN_BUDGET_AMOUNT = 1_000

AMOUNT = r"(?:rs\.?|inr|₹|\$|usd)?\s*(\d+(?:[.,]\d+)*)\s*(k|lakhs?|lacs?|crores?|cr|million|mn)?\b"

TIMELINE_TERMS = [
    ("immediate", ["immediately", "urgent", "urgently", "asap", "as soon as possible", "right away", "emergency"]),
    ("1_month", ["within a month", "next month", "1 month", "one month", "few weeks"]),
    ("3_months", ["3 months", "three months", "next quarter", "couple of months"]),
    ("flexible", ["flexible", "no rush", "whenever", "any time", "anytime"]),
]

INTERNATIONAL_TERMS = ["abroad", "international", "overseas", "another country", "visa", "medical tourism"]
DOMESTIC_TERMS = ["near me", "nearby", "close to home", "locally", "domestic", "same country"]


class IntentExtractionAgent(BaseAgent):
    """
    Agent responsible for turning a patient's free-text request into the
    raw request fields the intent normalizer accepts. Uses the LLM when one
    is configured and falls back to deterministic rules otherwise.
    """

    def __init__(self, llm=None):
        super().__init__(
            name="Intent Extraction Agent",
            description="Extract treatment intent (condition, budget, location, timeline) from free text.",
            llm=llm
        )

    def get_system_prompt(self) -> str:
        return """You extract a patient's treatment request from free text.

Extract ONLY what is explicitly stated. Do not infer or assume.

Return a JSON object with these fields (use null for unknown):
{
    "condition": <treatment or condition name, string or null>,
    "budget_min": <number or null - plain number, no currency symbols>,
    "budget_max": <number or null - "under 5 lakh" means budget_max 500000>,
    "preferred_location": <city, string or null>,
    "preferred_country": <country, string or null>,
    "timeline": <"immediate", "1_month", "3_months", "flexible", or null>,
    "travel_type": <"domestic" or "international", or null>
}"""

    async def process(self, input_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Extract intent fields from a message.

        Input:
            - message: The patient's free text
            - conditions: Condition catalog entries (for name/keyword lookup)
            - hospitals: Listed hospitals (for known cities/countries)

        Output:
            - raw_intent: dict of request fields (unvalidated)
            - source: "llm" or "rules"
        """
        message = (input_data.get("message") or "").strip()
        conditions: List[ConditionCatalogEntry] = list(input_data.get("conditions") or [])
        hospitals: List[HospitalRecord] = list(input_data.get("hospitals") or [])

        rules = self.extract_with_rules(message, conditions, hospitals)
        if not message or not self.llm.available:
            return {"raw_intent": rules, "source": "rules"}

        prompt = f"""Extract the treatment request from this message:

"{message}"

Return JSON with the fields described."""

        try:
            response = await self.llm.generate_json(prompt, self.get_system_prompt())
            extracted = json.loads(response)
        except LLMUnavailable as e:
            logger.warning("Intent extraction falling back to rules: %s", e)
            return {"raw_intent": rules, "source": "rules"}
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse LLM response as JSON: %s", e)
            return {"raw_intent": rules, "source": "rules"}

        if not isinstance(extracted, dict):
            return {"raw_intent": rules, "source": "rules"}

        merged = dict(rules)
        for key in INTENT_FIELDS:
            if extracted.get(key) is not None:
                merged[key] = extracted[key]
        return {"raw_intent": merged, "source": "llm"}

    # -------------------------------------------------------------------------
    # RULE-BASED EXTRACTION
    # -------------------------------------------------------------------------

    def extract_with_rules(
        self,
        message: str,
        conditions: Iterable[ConditionCatalogEntry],
        hospitals: Iterable[HospitalRecord] = ()
    ) -> Dict[str, Any]:
        text = message.lower()
        hospitals = list(hospitals)
        raw: Dict[str, Any] = {}

        condition = self._find_condition(text, conditions)
        if condition:
            raw["condition"] = condition

        budget_min, budget_max = self._find_budget(text)
        if budget_min is not None:
            raw["budget_min"] = budget_min
        if budget_max is not None:
            raw["budget_max"] = budget_max

        city = self._find_known(text, (h.city for h in hospitals))
        if city:
            raw["preferred_location"] = city
        country = self._find_known(text, (h.country for h in hospitals))
        if country:
            raw["preferred_country"] = country

        for timeline, terms in TIMELINE_TERMS:
            if any(term in text for term in terms):
                raw["timeline"] = timeline
                break

        if any(term in text for term in INTERNATIONAL_TERMS):
            raw["travel_type"] = "international"
        elif any(term in text for term in DOMESTIC_TERMS):
            raw["travel_type"] = "domestic"

        return raw

    def _find_condition(self, text: str, conditions: Iterable[ConditionCatalogEntry]) -> Optional[str]:
        entries = list(conditions)
        for entry in entries:
            if entry.condition.lower() in text:
                return entry.condition
        for entry in entries:
            for kw in entry.keywords:
                if re.search(rf"\b{re.escape(kw.lower())}\b", text):
                    return entry.condition
        return None

    def _find_known(self, text: str, names: Iterable[Optional[str]]) -> Optional[str]:
        # Longest name first so "New Delhi" wins over "Delhi"
        for name in sorted({n for n in names if n}, key=lambda n: (-len(n), n)):
            if re.search(rf"\b{re.escape(name.lower())}\b", text):
                return name
        return None

    def _find_budget(self, text: str) -> Tuple[Optional[int], Optional[int]]:
        range_match = re.search(rf"(?:between\s+)?{AMOUNT}\s*(?:-|to|and)\s*{AMOUNT}", text)
        if range_match:
            low_num, low_unit, high_num, high_unit = range_match.groups()
            low = self._amount(low_num, low_unit or high_unit)
            high = self._amount(high_num, high_unit)
            if low is not None and high is not None:
                return low, high

        budget_min = budget_max = None
        upper = re.search(rf"(?:under|below|upto|up to|less than|within|max(?:imum)?|budget(?: of| is)?)\s+{AMOUNT}", text)
        if upper:
            budget_max = self._amount(*upper.groups())
        lower = re.search(rf"(?:above|over|more than|at least|min(?:imum)?|from)\s+{AMOUNT}", text)
        if lower:
            budget_min = self._amount(*lower.groups())
        return budget_min, budget_max

    def _amount(self, number: str, unit: Optional[str]) -> Optional[int]:
        try:
            value = float(number.replace(",", ""))
        except ValueError:
            return None
        value *= AMOUNT_UNITS.get(unit or "", 1)
        if value < MIN_BUDGET_AMOUNT:
            return None
        return int(round(value))


# Singleton instance
intent_extraction_agent = IntentExtractionAgent()
