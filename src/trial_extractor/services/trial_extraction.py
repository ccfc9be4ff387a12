"""
Clinical-trial extraction service.

Turns a title/abstract pair into a ClinicalTrialCreate with one LLM call.

Strategy:
    1. Fail fast: no title, or an abstract under the "substantial" threshold,
       returns the insufficient-content record without calling the model.
    2. One prompt embedding title + abstract verbatim, the field schema and
       the formatting rules; forced tool call for strict JSON output.
    3. Every field the model left out or empty becomes "Not specified".
       The external id and DOI supplied by the caller are ground truth.
"""

import logging
from datetime import date
from typing import Any

from anthropic import AsyncAnthropic
from pydantic.alias_generators import to_camel

from trial_extractor.config import Settings
from trial_extractor.constants import (
    CANNOT_DETERMINE_NO_ABSTRACT,
    EXTRACTION_TOOL_NAME,
    INSUFFICIENT_CONTENT_NOTE,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    NARRATIVE_FIELDS,
    NOT_AVAILABLE_INSUFFICIENT,
    NOT_SPECIFIED,
    SUBSTANTIAL_ABSTRACT_MIN_CHARS,
    TITLE_NOT_AVAILABLE,
)
from trial_extractor.models.model_clinical_trial import ClinicalTrialCreate
from trial_extractor.services.llm import build_llm_client, query_llm_json

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a medical research data extraction expert. Extract structured "
    "clinical trial data from research articles in valid JSON format."
)

# camelCase key -> description shown to the model
FIELD_DESCRIPTIONS: dict[str, str] = {
    "pmcid": "string",
    "title": "string",
    "firstAuthor": "string",
    "year": "number",
    "reference": "string",
    "reportType": "string (e.g., Clinical Trial, Systematic Review, Meta-analysis)",
    "diseaseSite": (
        "string - For multiple cancer sites, list separately "
        "(e.g., 'Cervical cancer; Vaginal cancer')"
    ),
    "histopathology": "string",
    "tnmStage": (
        "string - Use standard TNM notation (T1-4, N0-3, M0-1) or 'Not specified' "
        "if FIGO/other staging systems are used"
    ),
    "overallStage": (
        "string - For FIGO staging, specify by cancer type (e.g., 'Cervical: IB2, "
        "IIA, IIB, IIIB, IVA; Vaginal: II, III, IV'). Include nodal involvement details."
    ),
    "dateRange": "string",
    "trialArms": (
        "string - Format as 'Arm1 = [description]\\nArm2 = [description]' "
        "with newlines between arms"
    ),
    "patientNumbers": (
        "string - Format as 'Arm1 = [number] patients\\nArm2 = [number] patients' "
        "or 'Total = [number] patients' if not broken down by arm"
    ),
    "medianFollowUp": (
        "string - Duration of follow-up (e.g., '5.2 years', '36 months', 'Not specified')"
    ),
    "primaryOutcome": "string",
    "secondaryOutcomes": "string",
    "statistics": (
        "string - For each outcome, format as: 'Outcome: [name]\\nArm1 - [result]"
        "\\nArm2 - [result]\\n[statistical comparison with HR, p-value, etc.]'"
    ),
    "additionalNotes": "string",
}

FORMATTING_RULES = """IMPORTANT FORMATTING RULES:
- For Trial Arms: When multiple treatment arms exist, format as "Arm1 = [description]\\nArm2 = [description]" with each arm on a new line
- For Statistics: Format as follows:
  * Start with "Primary Outcome: [outcome description]"
  * Then "Arm1 - [result]\\nArm2 - [result]\\n[statistical comparison]"
  * For secondary outcomes: "Secondary Outcomes:\\n[Outcome name]:\\nArm1 - [result]\\nArm2 - [result]\\n[statistical comparison]"
- Use \\n for line breaks to separate arms and outcomes clearly
- Include statistical measures like hazard ratios (HR), p-values, confidence intervals where available"""


def build_extraction_prompt(title: str, abstract: str, external_id: str) -> str:
    """The single extraction prompt: schema, article text and rules."""
    schema_lines = []
    for key, description in FIELD_DESCRIPTIONS.items():
        if key == "pmcid":
            schema_lines.append(f'  "pmcid": "{external_id}"')
        elif key == "title":
            schema_lines.append(f'  "title": "{title}"')
        elif description == "number":
            schema_lines.append(f'  "{key}": number')
        else:
            schema_lines.append(f'  "{key}": "{description}"')
    schema = "{\n" + ",\n".join(schema_lines) + "\n}"

    return (
        "Analyze this medical research article and extract structured clinical "
        "trial data in JSON format. Extract the following fields:\n\n"
        f"{schema}\n\n"
        f"Article Title: {title}\n"
        f"Abstract: {abstract}\n\n"
        f"{FORMATTING_RULES}\n\n"
        "Extract only the information that is explicitly mentioned in the text. "
        f'Use "{NOT_SPECIFIED}" for fields that cannot be determined from the '
        "available content. Respond with valid JSON only."
    )


def extraction_tool() -> dict[str, Any]:
    """Tool definition whose input_schema is the record schema."""
    properties: dict[str, Any] = {}
    for key, description in FIELD_DESCRIPTIONS.items():
        if description == "number":
            properties[key] = {"type": ["integer", "string"]}
        else:
            properties[key] = {"type": "string", "description": description}
    return {
        "name": EXTRACTION_TOOL_NAME,
        "description": "Record the structured clinical trial data extracted from the article.",
        "input_schema": {
            "type": "object",
            "properties": properties,
            "required": list(FIELD_DESCRIPTIONS),
        },
    }


def is_insufficient(title: str | None, abstract: str | None) -> bool:
    return (
        not title
        or not title.strip()
        or not abstract
        or len(abstract.strip()) < SUBSTANTIAL_ABSTRACT_MIN_CHARS
    )


def insufficient_content_record(
    title: str | None, external_id: str, doi: str | None = None
) -> ClinicalTrialCreate:
    """Canned record for an article without a usable abstract."""
    fields = {name: CANNOT_DETERMINE_NO_ABSTRACT for name in NARRATIVE_FIELDS}
    fields["first_author"] = NOT_AVAILABLE_INSUFFICIENT
    fields["reference"] = NOT_AVAILABLE_INSUFFICIENT
    fields["additional_notes"] = INSUFFICIENT_CONTENT_NOTE
    return ClinicalTrialCreate(
        pmcid=external_id,
        doi=doi or None,
        title=title or TITLE_NOT_AVAILABLE,
        year=date.today().year,
        raw_data=None,
        **fields,
    )


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return "\n".join(t for t in (_as_text(v) for v in value) if t)
    if isinstance(value, dict):
        return "\n".join(
            f"{k}: {_as_text(v)}" for k, v in value.items() if _as_text(v)
        )
    return str(value)


def _lookup(data: dict[str, Any], field: str) -> Any:
    camel = to_camel(field)
    if data.get(camel) not in (None, ""):
        return data[camel]
    return data.get(field)


def _as_year(value: Any) -> int:
    if isinstance(value, bool):
        return date.today().year
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    text = _as_text(value)
    if len(text) >= 4 and text[:4].isdigit():
        return int(text[:4])
    return date.today().year


def fill_missing_fields(
    data: dict[str, Any],
    external_id: str,
    title: str,
    doi: str | None = None,
) -> ClinicalTrialCreate:
    """Build the record from model output; nothing is ever left missing."""
    fields = {
        name: _as_text(_lookup(data, name)) or NOT_SPECIFIED for name in NARRATIVE_FIELDS
    }
    return ClinicalTrialCreate(
        pmcid=external_id or _as_text(data.get("pmcid")),
        doi=doi or _as_text(data.get("doi")) or None,
        title=_as_text(data.get("title")) or title,
        year=_as_year(data.get("year")),
        raw_data=data,
        **fields,
    )


class ExtractionService:
    """LLM-backed clinical-trial record extraction."""

    def __init__(
        self,
        client: AsyncAnthropic,
        model: str,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExtractionService":
        """Raises ConfigurationError when no API key is configured."""
        return cls(
            client=build_llm_client(settings),
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )

    async def extract(
        self,
        title: str,
        abstract_text: str,
        external_id: str,
        doi: str | None = None,
    ) -> ClinicalTrialCreate:
        """Extract a clinical-trial record from a title and abstract.

        Raises LLMError if the provider fails and LLMParseError if it does not
        answer with a JSON object; field-level gaps are never errors.
        """
        logger.info(
            "Extracting data for %s (title=%r, abstract_len=%d)",
            external_id,
            (title or "")[:80],
            len(abstract_text or ""),
        )
        if is_insufficient(title, abstract_text):
            logger.info("Insufficient content for %s, skipping LLM call", external_id)
            return insufficient_content_record(title, external_id, doi)

        prompt = build_extraction_prompt(title, abstract_text, external_id)
        data = await query_llm_json(
            self.client,
            self.model,
            prompt,
            tool=extraction_tool(),
            system=SYSTEM_PROMPT,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        record = fill_missing_fields(data, external_id, title, doi)
        missing = [n for n in NARRATIVE_FIELDS if getattr(record, n) == NOT_SPECIFIED]
        logger.info(
            "Extracted %s: %d/%d fields not specified",
            external_id,
            len(missing),
            len(NARRATIVE_FIELDS),
        )
        return record
