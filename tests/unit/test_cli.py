"""Unit tests for the click CLI."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner
from sqlalchemy.orm import sessionmaker

from trial_extractor.cli.cli import main
from trial_extractor.constants import DEFAULT_MAX_RESULTS
from trial_extractor.data_sources.base_client import DataSourceError
from trial_extractor.db.article_store import ArticleStore
from trial_extractor.helpers.pubmed_xml import build_abstract_record, extract_fields
from trial_extractor.models.model_clinical_trial import ClinicalTrialCreate
from trial_extractor.models.model_search import SearchResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_pubmed():
    client = MagicMock()
    client.__aenter__.return_value = client
    client.__aexit__.return_value = False
    with patch("trial_extractor.cli.cli._pubmed_client", return_value=client):
        yield client


@pytest.fixture
def store_session(db_session):
    """Point the CLI's session factory at the in-memory test database."""
    factory = sessionmaker(bind=db_session.get_bind(), expire_on_commit=False)
    with (
        patch("trial_extractor.cli.cli.get_session", side_effect=factory),
        patch("trial_extractor.cli.cli.init_db"),
    ):
        yield db_session


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "version" in result.output


def test_search(runner, fake_pubmed):
    fake_pubmed.search = AsyncMock(
        return_value=[
            SearchResult(
                pmcid="PMC123456",
                title="INTERLACE",
                year=2024,
                authors=["McCormack M", "Eminowicz G"],
                article_type="Randomized Controlled Trial",
            )
        ]
    )

    result = runner.invoke(main, ["search", "cervical cancer", "-d", "5years", "-n", "5"])

    assert result.exit_code == 0, result.output
    assert "[PMC123456] INTERLACE (2024)" in result.output
    fake_pubmed.search.assert_awaited_once_with(
        "cervical cancer", article_type="", max_results=5, date_filter="5years"
    )


def test_search_joins_several_terms_with_and(runner, fake_pubmed):
    fake_pubmed.search = AsyncMock(return_value=[])

    result = runner.invoke(main, ["search", "cervical cancer", "radiotherapy"])

    assert result.exit_code == 0, result.output
    assert "No results." in result.output
    fake_pubmed.search.assert_awaited_once_with(
        "cervical cancer AND radiotherapy",
        article_type="",
        max_results=DEFAULT_MAX_RESULTS,
        date_filter="",
    )


def test_search_blank_query_is_usage_error(runner, fake_pubmed):
    fake_pubmed.search = AsyncMock()

    result = runner.invoke(main, ["search", " "])

    assert result.exit_code == 2
    fake_pubmed.search.assert_not_awaited()


def test_search_failure(runner, fake_pubmed):
    fake_pubmed.search = AsyncMock(side_effect=DataSourceError("pubmed", "HTTP 503", 503))

    result = runner.invoke(main, ["search", "cancer"])

    assert result.exit_code == 1
    assert "Failed to search PubMed" in result.output


def test_abstract(runner, fake_pubmed, pubmed_xml):
    fake_pubmed.fetch_abstract = AsyncMock(
        return_value=build_abstract_record("38472913", extract_fields(pubmed_xml), "PMC123456")
    )

    result = runner.invoke(main, ["abstract", "PMC123456"])

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == "PMID: 38472913"
    assert lines[1] == "DP: 2024/Mar/15"
    assert lines[3] == "LID: 10.1016/S0140-6736(24)01438-7 [doi]"


def test_extract_stores_record(runner, fake_pubmed, store_session, pubmed_xml):
    fake_pubmed.fetch_abstract = AsyncMock(
        return_value=build_abstract_record("38472913", extract_fields(pubmed_xml), "PMC123456")
    )
    service = MagicMock()
    service.extract = AsyncMock(
        return_value=ClinicalTrialCreate(
            pmcid="PMC123456", title="INTERLACE", first_author="McCormack M", year=2024
        )
    )

    with patch(
        "trial_extractor.cli.cli.ExtractionService.from_settings", return_value=service
    ):
        result = runner.invoke(main, ["extract", "PMC123456"])

    assert result.exit_code == 0, result.output
    assert "Stored PMC123456" in result.output
    assert service.extract.await_args.kwargs["doi"] == "10.1016/S0140-6736(24)01438-7"
    assert ArticleStore(store_session).get_by_pmcid("PMC123456") is not None


def test_export_missing(runner, store_session):
    result = runner.invoke(main, ["export", "PMC000"])
    assert result.exit_code == 1
    assert "Article not found" in result.output


@pytest.mark.parametrize(
    "fmt, filename",
    [("json", "PMC123456.json"), ("html", "clinical-trial-report-PMC123456.html")],
)
def test_export(runner, store_session, tmp_path, fmt, filename):
    ArticleStore(store_session).create(
        ClinicalTrialCreate(
            pmcid="PMC123456", title="INTERLACE", first_author="McCormack M", year=2024
        )
    )

    result = runner.invoke(main, ["export", "PMC123456", "-f", fmt, "-o", str(tmp_path)])

    assert result.exit_code == 0, result.output
    path = tmp_path / filename
    assert path.exists()
    if fmt == "json":
        assert json.loads(path.read_text())["firstAuthor"] == "McCormack M"
    else:
        assert "McCormack M" in path.read_text()
