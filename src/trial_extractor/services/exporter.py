"""JSON and HTML export of stored clinical-trial records."""

import json
import re
from datetime import datetime
from functools import lru_cache

from jinja2 import Environment, PackageLoader, select_autoescape

from trial_extractor.constants import FIELD_LABELS, NARRATIVE_FIELDS
from trial_extractor.models.model_clinical_trial import ClinicalTrialRecord

_UNSAFE = re.compile(r"[^a-zA-Z0-9]")


def _sanitize(value: str) -> str:
    return _UNSAFE.sub("_", value)


def export_filename(record: ClinicalTrialRecord) -> str:
    """'10.1000/xyz' -> '10_1000_xyz.json'; falls back to the external id."""
    return f"{_sanitize(record.doi or record.pmcid)}.json"


def report_filename(record: ClinicalTrialRecord) -> str:
    return f"clinical-trial-report-{_sanitize(record.pmcid)}.html"


def export_json(record: ClinicalTrialRecord) -> str:
    """The record as pretty-printed JSON with camelCase keys."""
    return json.dumps(record.model_dump(by_alias=True, mode="json"), indent=2)


@lru_cache
def _environment() -> Environment:
    return Environment(
        loader=PackageLoader("trial_extractor", "templates"),
        autoescape=select_autoescape(["html"]),
    )


def render_html_report(
    record: ClinicalTrialRecord, generated_at: datetime | None = None
) -> str:
    """Standalone HTML page showing every field of a record."""
    rows = [("first_author", FIELD_LABELS["first_author"], record.first_author)]
    rows.append(("year", FIELD_LABELS["year"], str(record.year)))
    rows.extend(
        (name, FIELD_LABELS[name], getattr(record, name))
        for name in NARRATIVE_FIELDS
        if name != "first_author"
    )
    template = _environment().get_template("report.html")
    return template.render(
        record=record,
        rows=rows,
        generated_at=(generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M"),
    )
