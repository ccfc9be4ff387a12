"""Pytest configuration and fixtures."""

import pytest
from sqlalchemy.orm import sessionmaker

from trial_extractor.db.session import init_db, make_engine

SAMPLE_PUBMED_XML = """<?xml version="1.0" ?>
<!DOCTYPE PubmedArticleSet PUBLIC "-//NLM//DTD PubMedArticle, 1st January 2024//EN" "https://dtd.nlm.nih.gov/ncbi/pubmed/out/pubmed_240101.dtd">
<PubmedArticleSet>
  <PubmedArticle>
    <MedlineCitation Status="MEDLINE" Owner="NLM">
      <PMID Version="1">38472913</PMID>
      <Article PubModel="Print">
        <Journal>
          <JournalIssue CitedMedium="Internet">
            <PubDate>
              <Year>2024</Year>
              <Month>Mar</Month>
              <Day>15</Day>
            </PubDate>
          </JournalIssue>
          <Title>The Lancet. Oncology</Title>
        </Journal>
        <ArticleTitle>Chemoradiotherapy with or without induction chemotherapy in locally advanced cervical cancer (INTERLACE)</ArticleTitle>
        <Abstract>
          <AbstractText Label="BACKGROUND">Locally advanced cervical cancer is treated with chemoradiotherapy, yet relapse remains common.</AbstractText>
          <AbstractText Label="METHODS">Patients were randomly assigned to induction carboplatin&#x2013;paclitaxel followed by chemoradiotherapy or chemoradiotherapy alone.</AbstractText>
          <AbstractText Label="FINDINGS">5-year overall survival was 80% versus 72% (HR 0&#xb7;60, p = 0&#xb7;04).</AbstractText>
        </Abstract>
        <AuthorList CompleteYN="Y">
          <Author ValidYN="Y">
            <LastName>McCormack</LastName>
            <ForeName>Mary</ForeName>
            <Initials>M</Initials>
          </Author>
          <Author ValidYN="Y">
            <LastName>Eminowicz</LastName>
            <ForeName>Gemma</ForeName>
            <Initials>G</Initials>
          </Author>
          <Author ValidYN="Y">
            <CollectiveName>INTERLACE investigators</CollectiveName>
          </Author>
        </AuthorList>
      </Article>
    </MedlineCitation>
    <PubmedData>
      <ArticleIdList>
        <ArticleId IdType="pubmed">38472913</ArticleId>
        <ArticleId IdType="doi">10.1016/S0140-6736(24)01438-7</ArticleId>
        <ArticleId IdType="pmc">PMC123456</ArticleId>
      </ArticleIdList>
    </PubmedData>
  </PubmedArticle>
</PubmedArticleSet>
"""

SAMPLE_ABSTRACT_TEXT = (
    "Locally advanced cervical cancer is treated with chemoradiotherapy, yet "
    "relapse remains common. Patients were randomly assigned to induction "
    "carboplatin–paclitaxel followed by chemoradiotherapy or chemoradiotherapy "
    "alone. 5-year overall survival was 80% versus 72% (HR 0·60, p = 0·04)."
)


@pytest.fixture
def pubmed_xml() -> str:
    """A single-article efetch document."""
    return SAMPLE_PUBMED_XML


@pytest.fixture
def abstract_text() -> str:
    """The normalized abstract of SAMPLE_PUBMED_XML."""
    return SAMPLE_ABSTRACT_TEXT


@pytest.fixture
def db_session():
    """A session on a fresh in-memory SQLite database."""
    engine = make_engine("sqlite://")
    init_db(engine)
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()
    engine.dispose()
