"""Project-wide constants."""

from pathlib import Path

# -- Base client defaults ---------------------------------------------------
DEFAULT_TIMEOUT: float = 30.0
DEFAULT_MAX_RETRIES: int = 2

_PROJECT_ROOT: Path = Path(__file__).parent.parent.parent
DEFAULT_DATABASE_URL: str = f"sqlite:///{_PROJECT_ROOT / 'trial_extractor.db'}"

# -- PubMed / NCBI ----------------------------------------------------------
NCBI_BASE_URL: str = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
PUBMED_SEARCH_URL: str = f"{NCBI_BASE_URL}/esearch.fcgi"
PUBMED_SUMMARY_URL: str = f"{NCBI_BASE_URL}/esummary.fcgi"
PUBMED_FETCH_URL: str = f"{NCBI_BASE_URL}/efetch.fcgi"
PUBMED_LINK_URL: str = f"{NCBI_BASE_URL}/elink.fcgi"

DEFAULT_MAX_RESULTS: int = 20

# Date-window filters accepted by the search endpoint -> years back from today
DATE_FILTER_YEARS: dict[str, int] = {
    "1year": 0,
    "5years": 5,
    "10years": 10,
}

# -- Field extraction -------------------------------------------------------
# An abstract shorter than this is "insufficient": the field extractor keeps
# looking at the next tag and the extraction service refuses to call the LLM.
SUBSTANTIAL_ABSTRACT_MIN_CHARS: int = 50

# Fallback order for each field; first non-empty (title) or first substantial
# (abstract) match wins.
TITLE_TAGS: tuple[str, ...] = ("ArticleTitle", "Title")
ABSTRACT_TAGS: tuple[str, ...] = ("AbstractText", "Abstract")
PUB_DATE_CONTAINERS: tuple[str, ...] = (
    "PubDate",
    "ArticleDate",
    "DateCompleted",
    "DateRevised",
)

# -- Clinical-trial extraction ----------------------------------------------
NOT_SPECIFIED: str = "Not specified"
NOT_AVAILABLE_INSUFFICIENT: str = "Not available - insufficient article content"
CANNOT_DETERMINE_NO_ABSTRACT: str = "Cannot determine - no abstract"
TITLE_NOT_AVAILABLE: str = "Title not available"
INSUFFICIENT_CONTENT_NOTE: str = (
    "Article content not available for analysis. This may be due to: "
    "1) Very recent publication, 2) Limited PubMed access, "
    "3) Publication type restrictions. "
    "Try a different article or check the original source."
)

LLM_TEMPERATURE: float = 0.1
LLM_MAX_TOKENS: int = 4096
EXTRACTION_TOOL_NAME: str = "record_clinical_trial"

# Narrative fields of a clinical-trial record, in display order.
NARRATIVE_FIELDS: tuple[str, ...] = (
    "first_author",
    "reference",
    "report_type",
    "disease_site",
    "histopathology",
    "tnm_stage",
    "overall_stage",
    "date_range",
    "trial_arms",
    "patient_numbers",
    "median_follow_up",
    "primary_outcome",
    "secondary_outcomes",
    "statistics",
    "additional_notes",
)

# Human-readable labels used by the HTML report.
FIELD_LABELS: dict[str, str] = {
    "first_author": "First Author",
    "year": "Year",
    "reference": "Reference",
    "report_type": "Report Type",
    "disease_site": "Disease Site",
    "histopathology": "Histopathology",
    "tnm_stage": "TNM Stage",
    "overall_stage": "Overall Stage",
    "date_range": "Date Range",
    "trial_arms": "Trial Arms",
    "patient_numbers": "Patient Numbers",
    "median_follow_up": "Median Follow-up Duration",
    "primary_outcome": "Primary Outcome",
    "secondary_outcomes": "Secondary Outcomes",
    "statistics": "Statistics",
    "additional_notes": "Additional Notes",
}
