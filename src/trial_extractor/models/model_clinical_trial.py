"""
Pydantic models for extracted clinical-trial records.

ClinicalTrialCreate is both the output of the extraction service and the
payload accepted by the record store; ClinicalTrialRecord adds the columns
the store assigns.
"""

from typing import Any

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from trial_extractor.constants import NOT_SPECIFIED
from trial_extractor.models.model_base import ApiModel


class ClinicalTrialCreate(ApiModel):
    """A structured clinical-trial record keyed by its external id."""

    pmcid: str = Field(min_length=1)
    doi: str | None = None
    title: str
    first_author: str
    year: int
    reference: str = NOT_SPECIFIED
    report_type: str = NOT_SPECIFIED
    disease_site: str = NOT_SPECIFIED
    histopathology: str = NOT_SPECIFIED
    tnm_stage: str = NOT_SPECIFIED
    overall_stage: str = NOT_SPECIFIED
    date_range: str = NOT_SPECIFIED
    trial_arms: str = NOT_SPECIFIED
    patient_numbers: str = NOT_SPECIFIED
    median_follow_up: str = NOT_SPECIFIED
    primary_outcome: str = NOT_SPECIFIED
    secondary_outcomes: str = NOT_SPECIFIED
    statistics: str = NOT_SPECIFIED
    additional_notes: str = NOT_SPECIFIED
    raw_data: dict[str, Any] | None = None


class ClinicalTrialRecord(ClinicalTrialCreate):
    """A stored record."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    processed: bool = False


class ExtractRequest(ApiModel):
    """Body of POST /extract."""

    abstract_text: str = ""
    pmcid: str = Field(min_length=1)
    title: str = ""
    doi: str | None = None
