"""
Pydantic models for PubMed search.

SearchRequest is what the HTTP layer accepts; SearchResult is one row of the
answer, built from an esummary entry.
"""

from pydantic import Field, field_validator

from trial_extractor.constants import DATE_FILTER_YEARS, DEFAULT_MAX_RESULTS
from trial_extractor.models.model_base import ApiModel


class SearchRequest(ApiModel):
    """Search terms already joined with AND, plus optional filters."""

    query: str = Field(min_length=1)
    article_type: str = ""  # "" = no publication-type filter
    date_filter: str = ""  # "", "1year", "5years", "10years"
    max_results: int = Field(default=DEFAULT_MAX_RESULTS, ge=1, le=10000)

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value.strip()

    @field_validator("date_filter")
    @classmethod
    def known_date_filter(cls, value: str) -> str:
        if value and value not in DATE_FILTER_YEARS:
            raise ValueError(
                f"date_filter must be one of {sorted(DATE_FILTER_YEARS)} or empty"
            )
        return value


class SearchResult(ApiModel):
    """One matched article."""

    pmcid: str  # "PMC123456", or "PMID<id>" when there is no PMC id
    doi: str | None = None
    title: str
    authors: list[str] = []
    journal: str | None = None
    year: int
    abstract: str | None = None  # needs a separate fetch
    article_type: str | None = None
