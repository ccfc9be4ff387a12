"""Unit tests for the API models."""

import pytest
from pydantic import ValidationError

from trial_extractor.constants import NARRATIVE_FIELDS, NOT_SPECIFIED
from trial_extractor.models import (
    AbstractRecord,
    ClinicalTrialCreate,
    ClinicalTrialRecord,
    ExtractRequest,
    SearchRequest,
    SearchResult,
)


def test_search_request_accepts_camel_case():
    request = SearchRequest.model_validate(
        {"query": "  cervical cancer ", "articleType": "Clinical Trial", "dateFilter": "5years"}
    )
    assert request.query == "cervical cancer"
    assert request.article_type == "Clinical Trial"
    assert request.date_filter == "5years"
    assert request.max_results == 20


@pytest.mark.parametrize(
    "payload",
    [
        {"query": ""},
        {"query": "   "},
        {"query": "x", "dateFilter": "2years"},
        {"query": "x", "maxResults": 0},
        {},
    ],
)
def test_search_request_rejects(payload):
    with pytest.raises(ValidationError):
        SearchRequest.model_validate(payload)


def test_search_result_serializes_camel_case():
    result = SearchResult(pmcid="PMC1", title="T", year=2020, article_type="Review")
    data = result.model_dump(by_alias=True)
    assert data["articleType"] == "Review"
    assert data["abstract"] is None


def test_clinical_trial_create_defaults():
    record = ClinicalTrialCreate(pmcid="PMC1", title="T", first_author="A", year=2020)
    for name in NARRATIVE_FIELDS:
        if name != "first_author":
            assert getattr(record, name) == NOT_SPECIFIED
    assert record.raw_data is None


def test_clinical_trial_create_requires_id_and_title():
    with pytest.raises(ValidationError):
        ClinicalTrialCreate(pmcid="", title="T", first_author="A", year=2020)
    with pytest.raises(ValidationError):
        ClinicalTrialCreate.model_validate({"pmcid": "PMC1", "firstAuthor": "A", "year": 2020})


def test_clinical_trial_record_from_attributes():
    class Row:
        id = 3
        pmcid = "PMC1"
        doi = None
        title = "T"
        first_author = "A"
        year = 2020
        processed = False
        raw_data = None

    for name in NARRATIVE_FIELDS:
        if name != "first_author":
            setattr(Row, name, "x")

    record = ClinicalTrialRecord.model_validate(Row())
    assert record.id == 3
    assert record.statistics == "x"


def test_extract_request():
    request = ExtractRequest.model_validate(
        {"abstractText": "text", "pmcid": "PMC1", "title": "T"}
    )
    assert request.abstract_text == "text"
    assert request.doi is None
    with pytest.raises(ValidationError):
        ExtractRequest.model_validate({"abstractText": "text"})


def test_abstract_record_wire_names():
    record = AbstractRecord(
        pmid="PMID: 1", dp="DP: 2020", ti="TI: T", lid="LID: 1 [pmid]", ab="AB: ", pmcid="PMID1"
    )
    data = record.model_dump(by_alias=True)
    assert set(data) >= {"pmid", "dp", "ti", "lid", "ab", "fullAbstract", "publicationDate"}
