"""
Record store for extracted clinical-trial records.

Records are keyed by their external id (PMC id, "PMID<id>" placeholder or
DOI). Upsert overwrites an existing record in place; concurrent upserts of
the same id are last-write-wins.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trial_extractor.models.model_clinical_trial import (
    ClinicalTrialCreate,
    ClinicalTrialRecord,
)
from trial_extractor.sqlalchemy.articles import Article

logger = logging.getLogger(__name__)


class ArticleStore:
    """CRUD over the articles table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_pmcid(self, pmcid: str) -> ClinicalTrialRecord | None:
        row = self._row_by_pmcid(pmcid)
        return ClinicalTrialRecord.model_validate(row) if row else None

    def get_by_id(self, article_id: int) -> ClinicalTrialRecord | None:
        row = self.session.get(Article, article_id)
        return ClinicalTrialRecord.model_validate(row) if row else None

    def create(self, record: ClinicalTrialCreate) -> ClinicalTrialRecord:
        row = Article(**record.model_dump())
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        logger.info("Created article %s (id=%d)", row.pmcid, row.id)
        return ClinicalTrialRecord.model_validate(row)

    def update(self, article_id: int, fields: dict[str, Any]) -> ClinicalTrialRecord:
        """Overwrite the given columns of an existing record."""
        row = self.session.get(Article, article_id)
        if row is None:
            raise KeyError(f"No article with id {article_id}")
        for name, value in fields.items():
            if name != "id":
                setattr(row, name, value)
        self.session.commit()
        self.session.refresh(row)
        logger.info("Updated article %s (id=%d)", row.pmcid, row.id)
        return ClinicalTrialRecord.model_validate(row)

    def upsert(self, record: ClinicalTrialCreate) -> ClinicalTrialRecord:
        """Update the record with the same external id, or create it.

        An update only touches the fields the record was given explicitly.
        """
        existing = self._row_by_pmcid(record.pmcid)
        if existing is not None:
            return self.update(existing.id, record.model_dump(exclude_unset=True))
        try:
            return self.create(record)
        except IntegrityError:
            # Another request created the same pmcid first; overwrite it.
            self.session.rollback()
            existing = self._row_by_pmcid(record.pmcid)
            if existing is None:
                raise
            return self.update(existing.id, record.model_dump(exclude_unset=True))

    def _row_by_pmcid(self, pmcid: str) -> Article | None:
        return self.session.scalars(
            select(Article).where(Article.pmcid == pmcid)
        ).first()
