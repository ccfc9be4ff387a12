"""Trial Extractor: structured clinical-trial records from PubMed abstracts."""

__version__ = "0.1.0"
