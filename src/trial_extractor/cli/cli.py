"""Command-line interface for the trial extractor."""

import asyncio
from pathlib import Path

import click

from trial_extractor.config import ConfigurationError, get_settings
from trial_extractor.constants import DATE_FILTER_YEARS, DEFAULT_MAX_RESULTS
from trial_extractor.data_sources.base_client import (
    ClientConfig,
    DataSourceError,
    RetryConfig,
)
from trial_extractor.data_sources.pubmed import PubMedClient, join_terms
from trial_extractor.db.article_store import ArticleStore
from trial_extractor.db.session import get_session, init_db
from trial_extractor.models.model_clinical_trial import ClinicalTrialRecord
from trial_extractor.services.exporter import (
    export_filename,
    export_json,
    render_html_report,
    report_filename,
)
from trial_extractor.services.llm import LLMError, LLMParseError
from trial_extractor.services.trial_extraction import ExtractionService
from trial_extractor.utils.log import configure_logging


def _pubmed_client() -> PubMedClient:
    settings = get_settings()
    return PubMedClient(
        ClientConfig(
            retry=RetryConfig(max_retries=settings.max_retries),
            timeout_seconds=settings.request_timeout_seconds,
        ),
        api_key=settings.ncbi_api_key,
    )


@click.group()
@click.version_option(package_name="trial-extractor")
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def main(log_level: str | None):
    """Trial Extractor: structured clinical-trial records from PubMed."""
    configure_logging(log_level or get_settings().log_level)


@main.command()
@click.argument("query", nargs=-1, required=True)
@click.option("-t", "--article-type", default="", help='e.g. "Clinical Trial"')
@click.option(
    "-d",
    "--date-filter",
    type=click.Choice(sorted(DATE_FILTER_YEARS)),
    default=None,
    help="Restrict to a publication-date window",
)
@click.option(
    "-n",
    "--max-results",
    default=DEFAULT_MAX_RESULTS,
    show_default=True,
    help="Number of results to return",
)
def search(
    query: tuple[str, ...], article_type: str, date_filter: str | None, max_results: int
):
    """Search PubMed; several QUERY terms are joined with AND."""
    term = join_terms(list(query))
    if not term:
        raise click.UsageError("QUERY must not be blank")

    async def _run():
        async with _pubmed_client() as client:
            return await client.search(
                term,
                article_type=article_type,
                max_results=max_results,
                date_filter=date_filter or "",
            )

    try:
        results = asyncio.run(_run())
    except DataSourceError as e:
        raise click.ClickException(f"Failed to search PubMed: {e}") from e

    if not results:
        click.echo("No results.")
    for i, result in enumerate(results, 1):
        click.echo(f"  {i}. [{result.pmcid}] {result.title} ({result.year})")
        click.echo(f"     {result.article_type}; {', '.join(result.authors[:3])}")


@main.command()
@click.argument("external_id")
def abstract(external_id: str):
    """Show the citation-style record for one article."""

    async def _run():
        async with _pubmed_client() as client:
            return await client.fetch_abstract(external_id)

    try:
        record = asyncio.run(_run())
    except DataSourceError as e:
        raise click.ClickException(f"Failed to fetch abstract data: {e}") from e

    for line in (record.pmid, record.dp, record.ti, record.lid, record.ab):
        click.echo(line)


@main.command()
@click.argument("external_id")
def extract(external_id: str):
    """Fetch an article's abstract, extract its trial data and store it."""
    settings = get_settings()
    try:
        service = ExtractionService.from_settings(settings)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    async def _run():
        async with _pubmed_client() as client:
            fetched = await client.fetch_abstract(external_id)
        return await service.extract(
            fetched.title,
            fetched.full_abstract,
            external_id,
            doi=fetched.doi or None,
        )

    try:
        created = asyncio.run(_run())
    except DataSourceError as e:
        raise click.ClickException(f"Failed to fetch abstract data: {e}") from e
    except (LLMError, LLMParseError) as e:
        raise click.ClickException(f"Failed to extract clinical trial data: {e}") from e

    init_db()
    with get_session() as db:
        record = ArticleStore(db).upsert(created)
    click.echo(f"Stored {record.pmcid} (id={record.id})")
    click.echo(export_json(record))


@main.command()
@click.argument("external_id")
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice(["json", "html"]),
    default="json",
    show_default=True,
)
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
)
def export(external_id: str, fmt: str, output_dir: Path):
    """Write a stored record to a JSON file or an HTML report."""
    init_db()
    with get_session() as db:
        record: ClinicalTrialRecord | None = ArticleStore(db).get_by_pmcid(external_id)
    if record is None:
        raise click.ClickException("Article not found")

    output_dir.mkdir(parents=True, exist_ok=True)
    if fmt == "html":
        path = output_dir / report_filename(record)
        path.write_text(render_html_report(record), encoding="utf-8")
    else:
        path = output_dir / export_filename(record)
        path.write_text(export_json(record), encoding="utf-8")
    click.echo(f"Exported to: {path}")


@main.command("init-db")
def init_db_command():
    """Create the database tables."""
    init_db()
    click.echo(f"Initialized database at {get_settings().database_url}")


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True)
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str, port: int, reload: bool):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("trial_extractor.api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
