"""
CV Screening Pipeline - Main entry point.

Background processing of uploaded CVs:
Scheduler → Extraction workers → Analysis worker

Usage:
    # Run the workers until Ctrl+C
    cv-pipeline run

    # Create a session from a job offer and CV files
    cv-pipeline create-session --offer offer.yaml cvs/*.pdf

    # Check progress
    cv-pipeline status <session-id>
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from loguru import logger
from pydantic import ValidationError

from shared.config import get_settings
from shared.database import SessionStore, create_session_store
from shared.exceptions import PipelineError
from shared.models import JobOffer

from .runner import ProcessingPipeline
from .sessions import SessionService


def setup_logging():
    """Configure loguru logging."""
    settings = get_settings()
    logger.remove()

    if settings.log_format == "json":
        logger.add(
            sys.stderr,
            format="{message}",
            level=settings.log_level,
            serialize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level>"
            ),
            level=settings.log_level,
        )


def load_job_offer(path: Path) -> JobOffer:
    """Read a job offer from a YAML file."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    try:
        return JobOffer.model_validate(data)
    except ValidationError as e:
        raise click.BadParameter(f"Invalid job offer in {path}: {e}") from e


async def _with_service(action):
    """Run `action(service)` against a connected store."""
    store: SessionStore = create_session_store()
    await store.connect()
    await store.ensure_indexes()
    try:
        return await action(SessionService(store))
    finally:
        await store.disconnect()


def _run_session_command(action):
    try:
        return asyncio.run(_with_service(action))
    except PipelineError as e:
        raise click.ClickException(str(e)) from e


@click.group()
def cli():
    """
    CV Screening Pipeline - Batch CV extraction and candidate ranking.

    Extracts structured data from uploaded CVs with an LLM, scores every
    candidate against the session's job offer, and builds a ranked
    comparison with hiring recommendations.
    """
    setup_logging()


@cli.command()
@click.option(
    "--workers",
    "-w",
    type=int,
    default=None,
    help="Concurrent document workers (default: CPU count)",
)
@click.option(
    "--interval",
    "-i",
    type=float,
    default=None,
    help="Scheduler polling interval in seconds (default: 30)",
)
def run(workers: Optional[int], interval: Optional[float]):
    """Run scheduler and workers until interrupted."""

    async def _run():
        pipeline = ProcessingPipeline(worker_count=workers, scheduler_interval=interval)
        try:
            await pipeline.initialize()
            await pipeline.run_forever()
        finally:
            await pipeline.cleanup()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        logger.info("Interrupted, pipeline stopped")


@cli.command("create-session")
@click.option(
    "--offer",
    "-o",
    "offer_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="YAML file with the job offer",
)
@click.argument(
    "cv_files",
    nargs=-1,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def create_session(offer_path: Path, cv_files: tuple[Path, ...]):
    """Create a session and register CV files for processing."""
    job_offer = load_job_offer(offer_path)

    async def action(service: SessionService):
        session = await service.create_session(job_offer)
        documents = []
        if cv_files:
            documents = await service.add_documents(
                session.id, [str(p.resolve()) for p in cv_files]
            )
        return session, documents

    session, documents = _run_session_command(action)

    click.echo(f"Session: {session.id}")
    click.echo(f"Job offer: {job_offer.title}")
    for document in documents:
        line = f"  {document.status.value:<9} {document.file_name}"
        if document.error_message:
            line += f" ({document.error_message})"
        click.echo(line)


@cli.command()
@click.argument("session_id")
def status(session_id: str):
    """Show the processing status of a session."""
    report = _run_session_command(lambda service: service.get_status(session_id))

    click.echo(f"Session:   {report.session_id}")
    click.echo(f"Status:    {report.status.value} ({report.progress}%)")
    if report.status_message:
        click.echo(f"Message:   {report.status_message}")
    click.echo(
        f"Documents: {report.total_documents} total, {report.processed_documents} processed, "
        f"{report.failed_documents} failed, {report.pending_documents} pending"
    )
    if report.statistics.processed_documents:
        click.echo(
            f"Scores:    avg {report.statistics.average_score:.1f}, "
            f"high {report.statistics.highest_score}, low {report.statistics.lowest_score}"
        )
    click.echo(f"Analysis:  {'ready' if report.has_comparison_matrix else 'pending'}")


@cli.command()
@click.argument("session_id")
def reprocess(session_id: str):
    """Send the failed documents of a session back to the scheduler."""
    documents = _run_session_command(lambda service: service.reprocess_failed(session_id))
    click.echo(f"Re-queued {len(documents)} failed documents")


@cli.command()
@click.argument("session_id")
def cancel(session_id: str):
    """Cancel a session; the scheduler will skip it."""
    _run_session_command(lambda service: service.cancel_session(session_id))
    click.echo(f"Session {session_id} cancelled")


@cli.command("delete-session")
@click.argument("session_id")
@click.confirmation_option(prompt="Delete the session and all its documents?")
def delete_session(session_id: str):
    """Delete a session and its documents."""
    deleted = _run_session_command(lambda service: service.delete_session(session_id))
    if not deleted:
        raise click.ClickException(f"Session {session_id} not found")
    click.echo(f"Session {session_id} deleted")


@cli.command("delete-document")
@click.argument("session_id")
@click.argument("document_id")
def delete_document(session_id: str, document_id: str):
    """Remove one document from a session; its analysis is rebuilt."""
    document = _run_session_command(
        lambda service: service.delete_document(session_id, document_id)
    )
    click.echo(f"Document {document.file_name} deleted from session {session_id}")


if __name__ == "__main__":
    cli()
