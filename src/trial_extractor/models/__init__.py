"""Data models for Trial Extractor."""

from trial_extractor.models.model_clinical_trial import (
    ClinicalTrialCreate,
    ClinicalTrialRecord,
    ExtractRequest,
)
from trial_extractor.models.model_pubmed_abstract import (
    AbstractRecord,
    ArticleDetail,
    PubmedFields,
)
from trial_extractor.models.model_search import SearchRequest, SearchResult

__all__ = [
    "AbstractRecord",
    "ArticleDetail",
    "ClinicalTrialCreate",
    "ClinicalTrialRecord",
    "ExtractRequest",
    "PubmedFields",
    "SearchRequest",
    "SearchResult",
]
