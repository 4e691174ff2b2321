import mimetypes
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer

from docflow.config.settings import Settings
from docflow.database.connection import close_pool, init_pool
from docflow.documents.models import UploadedFile
from docflow.documents.service import Runtime, build_service
from docflow.logging.logger import Log

app = typer.Typer(
    name="docflow",
    help="Ingest documents and run them through the processing pipeline.",
    add_completion=False,
)


@contextmanager
def _runtime() -> Iterator[Runtime]:
    """Load settings, open the pool when needed and tear everything down afterwards."""
    settings = Settings()
    Log.configure(settings.log_level)
    uses_postgres = "postgres" in (settings.record_store.lower(), settings.event_backend.lower())
    if uses_postgres:
        init_pool(settings)

    runtime = build_service(settings)
    try:
        yield runtime
    finally:
        runtime.dispatcher.shutdown()
        if uses_postgres:
            close_pool()


@app.command()
def process(
    paths: list[Path] = typer.Argument(
        ...,
        help="Files to upload",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    owner: str = typer.Option(..., "--owner", "-u", help="Id of the owning user"),
    timeout: float = typer.Option(600.0, "--timeout", help="Seconds to wait for the pipeline"),
) -> None:
    """Upload files for an owner and wait until every pipeline settles."""
    with _runtime() as runtime:
        document_ids = []
        for path in paths:
            media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            record = runtime.service.trigger_upload(
                owner,
                UploadedFile(filename=path.name, media_type=media_type, content=path.read_bytes()),
            )
            document_ids.append(record.id)

        if not runtime.dispatcher.wait_idle(timeout):
            Log.warning(f"Pipeline still running after {timeout:.0f}s")

        for document_id in document_ids:
            record = runtime.service.get(document_id, owner)
            typer.echo(
                f"{record.id}\t{record.status.value}\t{record.classification_label}\t"
                f"{record.route_destination or '-'}\t{record.original_display_name}"
            )


@app.command()
def stats(
    owner: str = typer.Option(..., "--owner", "-u", help="Id of the owning user"),
) -> None:
    """Print dashboard counters for an owner's documents."""
    with _runtime() as runtime:
        counters = runtime.service.stats(owner)

    typer.echo(f"Total documents:\t{counters.total_documents}")
    typer.echo(f"Needs review:\t{counters.needs_review}")
    typer.echo(f"Processed today:\t{counters.processed_today}")
    for label, count in sorted(counters.label_breakdown.items()):
        typer.echo(f"  {label}:\t{count}")


def main() -> None:
    """Entry point: load settings -> build the service -> run the CLI."""
    app()


if __name__ == "__main__":
    main()
