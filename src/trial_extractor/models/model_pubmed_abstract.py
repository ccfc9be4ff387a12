"""PubMed abstract data models."""

from pydantic import BaseModel

from trial_extractor.models.model_base import ApiModel


class PubmedFields(BaseModel):
    """Fields pulled out of one efetch XML document. Missing fields are ""."""

    title: str = ""
    abstract: str = ""
    doi: str = ""
    publication_date: str = ""  # "YYYY", "YYYY/Month" or "YYYY/Month/Day"


class AbstractRecord(ApiModel):
    """Citation-style display record plus the raw values behind it."""

    # Labeled lines
    pmid: str  # "PMID: 38472913"
    dp: str  # "DP: 2024/Mar/15"
    ti: str  # "TI: <title>"
    lid: str  # "LID: <doi> [doi]" or "LID: <pmid> [pmid]"
    ab: str  # "AB: <abstract>"

    # Raw values
    full_abstract: str = ""
    title: str = ""
    doi: str = ""
    publication_date: str = ""
    pmcid: str  # external id as requested by the caller


class ArticleDetail(ApiModel):
    """A freshly fetched article that has not been through extraction yet."""

    pmcid: str
    title: str = ""
    abstract: str = ""
    year: int
    journal: str = ""
    authors: list[str] = []
    raw_xml: str = ""
