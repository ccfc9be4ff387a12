"""
PubMed API client.

Methods:
  1. search          — esearch + esummary → SearchResult list
  2. resolve_pmid    — PMC id / "PMID<id>" placeholder → PMID
  3. fetch_xml       — raw efetch XML for one article
  4. fetch_abstract  — AbstractRecord (PMID/DP/TI/LID/AB display record)
  5. fetch_article   — ArticleDetail (title, abstract, year, journal, authors)
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any

from trial_extractor.constants import (
    DATE_FILTER_YEARS,
    DEFAULT_MAX_RESULTS,
    PUBMED_FETCH_URL,
    PUBMED_LINK_URL,
    PUBMED_SEARCH_URL,
    PUBMED_SUMMARY_URL,
)
from trial_extractor.data_sources.base_client import (
    BaseClient,
    ClientConfig,
    RequestContext,
)
from trial_extractor.helpers import pubmed_xml
from trial_extractor.models.model_pubmed_abstract import AbstractRecord, ArticleDetail
from trial_extractor.models.model_search import SearchResult

logger = logging.getLogger("trial_extractor.data_sources.pubmed")

_LEADING_YEAR = re.compile(r"^\s*(\d{4})")


def join_terms(terms: list[str]) -> str:
    """Join search terms with AND, skipping blanks."""
    return " AND ".join(t.strip() for t in terms if t and t.strip())


def build_query(
    query: str,
    article_type: str = "",
    date_filter: str = "",
    today: date | None = None,
) -> str:
    """Append the date-window and publication-type clauses to a query.

    >>> build_query("cervical cancer", "Clinical Trial", "5years", date(2024, 1, 1))
    'cervical cancer AND 2019:2024[pdat] AND Clinical Trial[pt]'
    """
    term = query
    if date_filter in DATE_FILTER_YEARS:
        year = (today or date.today()).year
        years_back = DATE_FILTER_YEARS[date_filter]
        if years_back:
            term += f" AND {year - years_back}:{year}[pdat]"
        else:
            term += f" AND {year}[pdat]"
    if article_type:
        term += f" AND {article_type}[pt]"
    return term


def parse_year(value: str | None, default: int | None = None) -> int:
    """Leading 4-digit year of a PubMed date string ("2021 Mar 25")."""
    match = _LEADING_YEAR.match(value or "")
    if match:
        return int(match.group(1))
    return default if default is not None else date.today().year


class PubMedClient(BaseClient):
    """Client for the NCBI E-utilities (esearch, esummary, elink, efetch)."""

    SEARCH_URL = PUBMED_SEARCH_URL
    SUMMARY_URL = PUBMED_SUMMARY_URL
    LINK_URL = PUBMED_LINK_URL
    FETCH_URL = PUBMED_FETCH_URL

    def __init__(self, config: ClientConfig | None = None, api_key: str = "") -> None:
        super().__init__(config)
        self._api_key = api_key

    @property
    def _source_name(self) -> str:
        return "pubmed"

    def _params(self, params: dict[str, Any]) -> dict[str, Any]:
        if self._api_key:
            return {**params, "api_key": self._api_key}
        return params

    def _context(self, method: str, params: dict[str, Any]) -> RequestContext:
        return RequestContext(source=self._source_name, method=method, params=params)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        article_type: str = "",
        max_results: int = DEFAULT_MAX_RESULTS,
        date_filter: str = "",
    ) -> list[SearchResult]:
        """Search PubMed and return one SearchResult per matched PMID."""
        term = build_query(query, article_type, date_filter)
        pmids = await self.search_ids(term, max_results)
        if not pmids:
            return []
        return await self.summarize(pmids)

    async def search_ids(self, term: str, max_results: int) -> list[str]:
        """esearch: query string → ordered PMID list."""
        params = {
            "db": "pubmed",
            "term": term,
            "retmax": max_results,
            "retmode": "json",
        }
        data = await self._rest_get(
            self.SEARCH_URL, self._params(params), context=self._context("search", params)
        )
        pmids: list[str] = data.get("esearchresult", {}).get("idlist", [])
        logger.info("PubMed search %r matched %d ids", term, len(pmids))
        return pmids

    async def summarize(self, pmids: list[str]) -> list[SearchResult]:
        """esummary: PMIDs → SearchResult list, in the order given."""
        params = {"db": "pubmed", "id": ",".join(pmids), "retmode": "json"}
        data = await self._rest_get(
            self.SUMMARY_URL,
            self._params(params),
            context=self._context("summarize", params),
        )
        result = data.get("result", {})
        return [
            self._parse_summary(pmid, result[pmid]) for pmid in pmids if pmid in result
        ]

    @staticmethod
    def _parse_summary(pmid: str, entry: dict[str, Any]) -> SearchResult:
        article_ids = {
            aid.get("idtype"): aid.get("value")
            for aid in entry.get("articleids", [])
            if aid.get("value")
        }
        pubtypes = entry.get("pubtype") or []
        return SearchResult(
            pmcid=article_ids.get("pmc") or f"PMID{pmid}",
            doi=article_ids.get("doi"),
            title=entry.get("title") or "No title available",
            authors=[a["name"] for a in entry.get("authors", []) if a.get("name")],
            journal=entry.get("fulljournalname") or None,
            year=parse_year(entry.get("pubdate")),
            abstract=None,
            article_type=pubtypes[0] if pubtypes else "Unknown",
        )

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def resolve_pmid(self, external_id: str) -> str:
        """Map an external id to a PMID.

        "PMC123456" is looked up through elink (falls back to the id itself
        when PubMed has no link); "PMID123" → "123"; anything else is
        assumed to already be a PMID.
        """
        if external_id.startswith("PMC"):
            params = {
                "dbfrom": "pmc",
                "db": "pubmed",
                "id": external_id.removeprefix("PMC"),
                "retmode": "json",
            }
            data = await self._rest_get(
                self.LINK_URL, self._params(params), context=self._context("elink", params)
            )
            try:
                return str(data["linksets"][0]["linksetdbs"][0]["links"][0])
            except (KeyError, IndexError, TypeError):
                logger.warning("No PubMed link for %s", external_id)
                return external_id
        if external_id.startswith("PMID"):
            return external_id.removeprefix("PMID")
        return external_id

    async def fetch_xml(self, pmid: str) -> str:
        """efetch: raw PubMed XML for one PMID."""
        params = {"db": "pubmed", "id": pmid, "retmode": "xml"}
        xml_text = await self._rest_get_text(
            self.FETCH_URL, self._params(params), context=self._context("efetch", params)
        )
        logger.info("Fetched XML for %s, length: %d", pmid, len(xml_text))
        return xml_text

    async def fetch_abstract(self, external_id: str) -> AbstractRecord:
        """Fetch one article and assemble its display record."""
        pmid = await self.resolve_pmid(external_id)
        xml_text = await self.fetch_xml(pmid)
        fields = pubmed_xml.extract_fields(xml_text)
        logger.info(
            "Abstract for %s: title=%r abstract_len=%d doi=%r date=%r",
            external_id,
            fields.title[:80],
            len(fields.abstract),
            fields.doi,
            fields.publication_date,
        )
        return pubmed_xml.build_abstract_record(pmid, fields, external_id)

    async def fetch_article(self, external_id: str) -> ArticleDetail:
        """Fetch one article's details (not yet extracted, not persisted)."""
        pmid = await self.resolve_pmid(external_id)
        xml_text = await self.fetch_xml(pmid)
        fields = pubmed_xml.extract_fields(xml_text)
        return ArticleDetail(
            pmcid=external_id,
            title=fields.title,
            abstract=fields.abstract,
            year=parse_year(fields.publication_date),
            journal=pubmed_xml.extract_journal(xml_text),
            authors=pubmed_xml.extract_authors(xml_text),
            raw_xml=xml_text,
        )
