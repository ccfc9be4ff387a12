"""
Field extraction from PubMed efetch XML.

Each extractor tries the structured route first (ElementTree, query by
element name in the documented fallback order) and, when the payload is not
well-formed XML, the same ordered lookups as regular expressions over the
raw text. Entities outside XML's predefined five are folded through the
normalizer's table before parsing, so both routes produce the same text.
Extraction never raises: a field that cannot be found is "".
Fetch-level failures (HTTP errors, timeouts) are the client's business.
"""

import logging
import re
import xml.etree.ElementTree as ET

from trial_extractor.constants import (
    ABSTRACT_TAGS,
    PUB_DATE_CONTAINERS,
    SUBSTANTIAL_ABSTRACT_MIN_CHARS,
    TITLE_TAGS,
)
from trial_extractor.helpers.text_helpers import (
    fold_entities_for_xml,
    normalize_parsed_text,
    normalize_pubmed_text,
)
from trial_extractor.models.model_pubmed_abstract import AbstractRecord, PubmedFields

logger = logging.getLogger(__name__)

_YEAR = re.compile(r"\d{4}")
_DOI = re.compile(
    r"<ArticleId\s+IdType\s*=\s*[\"']doi[\"']\s*>([^<]+)</ArticleId>", re.IGNORECASE
)


def _parse(xml_text: str) -> ET.Element | None:
    if not xml_text or not xml_text.strip():
        return None
    try:
        return ET.fromstring(fold_entities_for_xml(xml_text))
    except ET.ParseError as e:
        logger.debug("Falling back to pattern extraction: %s", e)
        return None


def _element_text(elem: ET.Element) -> str:
    return normalize_parsed_text("".join(elem.itertext()))


def _tag_pattern(tag: str) -> re.Pattern:
    # <Tag> or <Tag attr="..."> but not <TagSuffix>
    return re.compile(
        rf"<{tag}(?:\s[^>]*)?>([\s\S]*?)</{tag}>", re.IGNORECASE
    )


def _tag_matches(xml_text: str, tag: str) -> list[str]:
    return [normalize_pubmed_text(m) for m in _tag_pattern(tag).findall(xml_text)]


def _first_substantial(candidates: list[list[str]]) -> str:
    """Join each candidate's parts; first result >= the threshold wins,
    otherwise the last non-empty result."""
    found = ""
    for parts in candidates:
        joined = " ".join(p for p in parts if p).strip()
        if not joined:
            continue
        found = joined
        if len(joined) >= SUBSTANTIAL_ABSTRACT_MIN_CHARS:
            break
    return found


# ------------------------------------------------------------------
# Individual fields
# ------------------------------------------------------------------


def _title(xml_text: str, root: ET.Element | None) -> str:
    for tag in TITLE_TAGS:
        if root is not None:
            for elem in root.iter(tag):
                text = _element_text(elem)
                if text:
                    return text
        else:
            for text in _tag_matches(xml_text, tag):
                if text:
                    return text
    return ""


def _abstract(xml_text: str, root: ET.Element | None) -> str:
    """All sections of the first tag that yields a substantial abstract.

    Structured abstracts come as several <AbstractText Label="..."> sections;
    they are joined with a single space.
    """
    if root is not None:
        candidates = [
            [_element_text(elem) for elem in root.iter(tag)] for tag in ABSTRACT_TAGS
        ]
    else:
        candidates = [_tag_matches(xml_text, tag) for tag in ABSTRACT_TAGS]
    return _first_substantial(candidates)


def _doi(xml_text: str, root: ET.Element | None) -> str:
    if root is not None:
        for elem in root.iter("ArticleId"):
            if elem.get("IdType", "").lower() == "doi":
                doi = _element_text(elem)
                if doi:
                    return doi
        return ""
    match = _DOI.search(xml_text or "")
    return normalize_pubmed_text(match.group(1)) if match else ""


def _compose_date(year: str, month: str, day: str) -> str:
    if not year:
        return ""
    date = year
    if month:
        date += f"/{month}"
        if day:
            date += f"/{day}"
    return date


def _date_from_container(container: ET.Element) -> str:
    year = (container.findtext("Year") or "").strip()
    if not _YEAR.fullmatch(year):
        # <MedlineDate>2022 Jan-Feb</MedlineDate>
        medline = container.findtext("MedlineDate") or ""
        match = _YEAR.search(medline)
        return match.group(0) if match else ""
    month = (container.findtext("Month") or "").strip()
    day = (container.findtext("Day") or "").strip()
    return _compose_date(year, month, day)


def _date_from_text(xml_text: str) -> str:
    def first(tag: str, block: str) -> str:
        match = _tag_pattern(tag).search(block)
        return normalize_pubmed_text(match.group(1)) if match else ""

    for container in PUB_DATE_CONTAINERS:
        match = _tag_pattern(container).search(xml_text)
        if match:
            block = match.group(1)
            year = first("Year", block)
            if _YEAR.fullmatch(year):
                return _compose_date(year, first("Month", block), first("Day", block))

    year = first("Year", xml_text)
    if not _YEAR.fullmatch(year):
        return ""
    return _compose_date(year, first("Month", xml_text), first("Day", xml_text))


def _pub_date(xml_text: str, root: ET.Element | None) -> str:
    """Publication date as "YYYY", "YYYY/Month" or "YYYY/Month/Day"; "" when
    no year is present."""
    if root is None:
        return _date_from_text(xml_text or "")

    for tag in PUB_DATE_CONTAINERS:
        for container in root.iter(tag):
            date = _date_from_container(container)
            if date:
                return date

    for elem in root.iter("Year"):
        year = (elem.text or "").strip()
        if _YEAR.fullmatch(year):
            return year
    return ""


def _authors(root: ET.Element | None) -> list[str]:
    """Author names as "LastName Initials"; [] when the XML is not well-formed."""
    if root is None:
        return []

    authors = []
    for author in root.iter("Author"):
        last_name = (author.findtext("LastName") or "").strip()
        initials = (author.findtext("Initials") or "").strip()
        if last_name:
            authors.append(f"{last_name} {initials}".strip())
            continue
        collective = normalize_parsed_text(author.findtext("CollectiveName") or "")
        if collective:
            authors.append(collective)
    return authors


def _journal(xml_text: str, root: ET.Element | None) -> str:
    if root is not None:
        journal = root.find(".//Journal/Title")
        return _element_text(journal) if journal is not None else ""
    matches = _tag_matches(xml_text or "", "Title")
    return matches[0] if matches else ""


# ------------------------------------------------------------------
# Public extractors
# ------------------------------------------------------------------


def extract_title(xml_text: str) -> str:
    return _title(xml_text or "", _parse(xml_text))


def extract_abstract(xml_text: str) -> str:
    return _abstract(xml_text or "", _parse(xml_text))


def extract_doi(xml_text: str) -> str:
    return _doi(xml_text or "", _parse(xml_text))


def extract_pub_date(xml_text: str) -> str:
    return _pub_date(xml_text or "", _parse(xml_text))


def extract_authors(xml_text: str) -> list[str]:
    return _authors(_parse(xml_text))


def extract_journal(xml_text: str) -> str:
    return _journal(xml_text or "", _parse(xml_text))


def extract_fields(xml_text: str) -> PubmedFields:
    """Title, abstract, DOI and publication date from one efetch document."""
    root = _parse(xml_text)
    xml_text = xml_text or ""
    return PubmedFields(
        title=_title(xml_text, root),
        abstract=_abstract(xml_text, root),
        doi=_doi(xml_text, root),
        publication_date=_pub_date(xml_text, root),
    )


def build_abstract_record(
    pmid: str, fields: PubmedFields, external_id: str
) -> AbstractRecord:
    """Labeled PMID/DP/TI/LID/AB lines plus the raw values."""
    lid = f"LID: {fields.doi} [doi]" if fields.doi else f"LID: {pmid} [pmid]"
    return AbstractRecord(
        pmid=f"PMID: {pmid}",
        dp=f"DP: {fields.publication_date}",
        ti=f"TI: {fields.title}",
        lid=lid,
        ab=f"AB: {fields.abstract}",
        full_abstract=fields.abstract,
        title=fields.title,
        doi=fields.doi,
        publication_date=fields.publication_date,
        pmcid=external_id,
    )
