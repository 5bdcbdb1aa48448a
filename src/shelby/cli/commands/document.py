"""Document commands."""

from pathlib import Path

import click

from shelby.cli.error_handling import handle_domain_error
from shelby.cli.options import build_pagination, echo_page, pagination_options
from shelby.domain.document import DocumentService
from shelby.domain.errors import ShelbyError
from shelby.utils.date_parser import parse_date


@click.group()
def document_group():
    """Manage documents."""
    pass


@document_group.command("upload")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--description", help="What the document is about")
@click.option("--mime-type", help="MIME type (guessed from the filename if omitted)")
@click.option("--from", "from_person_id", type=int, help="Sender person ID")
@click.option("--to", "to_person_id", type=int, help="Recipient person ID")
@click.option("--user", "actor", type=int, help="ID of the user processing the document")
@click.option("--received", help="Date the document was received (YYYY-MM-DD)")
@click.pass_context
def upload(
    ctx, path: Path, description, mime_type, from_person_id, to_person_id, actor, received
):
    """Upload a file.

    Examples:
        shelby document upload invoice.pdf --description "Room rent March"
        shelby document upload letter.pdf --from 3 --received 2026-03-02
    """
    service = DocumentService(ctx.obj["coordinator"])
    try:
        document_id = service.upload(
            path.read_bytes(),
            path.name,
            mime_type,
            description=description,
            from_person_id=from_person_id,
            to_person_id=to_person_id,
            actor=actor,
            received=parse_date(received) if received else None,
        )
        click.echo(f"Uploaded '{path.name}' (ID: {document_id})")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@document_group.command("fetch")
@click.argument("document_id", type=int)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write to this file instead of the original filename",
)
@click.pass_context
def fetch(ctx, document_id: int, output: Path | None):
    """Save a document's file."""
    service = DocumentService(ctx.obj["coordinator"])
    try:
        document, payload = service.read(document_id)
    except ShelbyError as e:
        handle_domain_error(ctx, e)

    target = output or Path(document.filename).name
    if Path(target).exists() and not click.confirm(f"Overwrite {target}?"):
        click.echo("Fetch cancelled.")
        return
    Path(target).write_bytes(payload)
    click.echo(f"Saved document {document_id} to {target} ({document.size} bytes)")


@document_group.command("show")
@click.argument("document_id", type=int)
@click.pass_context
def show(ctx, document_id: int):
    """Show document metadata."""
    try:
        document = DocumentService(ctx.obj["coordinator"]).get_document(document_id)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    click.echo(f"ID: {document.id}")
    click.echo(f"Filename: {document.filename}")
    click.echo(f"Type: {document.mime_type}")
    click.echo(f"Size: {document.size} bytes")
    click.echo(f"SHA-256: {document.checksum}")
    if document.received:
        click.echo(f"Received: {document.received}")
    click.echo(f"Created: {document.created_at}")
    click.echo(f"References: {document.reference_count}")
    if document.description:
        click.echo(f"Description: {document.description}")


@document_group.command("delete")
@click.argument("document_id", type=int)
@click.pass_context
def delete(ctx, document_id: int):
    """Delete a document no entry references."""
    try:
        DocumentService(ctx.obj["coordinator"]).delete_document(document_id)
        click.echo(f"Deleted document {document_id}")
    except ShelbyError as e:
        handle_domain_error(ctx, e)


@document_group.command("list")
@pagination_options
@click.pass_context
def list_documents(ctx, offset, limit, sort_column, desc):
    """List documents."""
    pagination = build_pagination(ctx, offset, limit, sort_column, desc)
    try:
        page = DocumentService(ctx.obj["coordinator"]).list_documents(pagination=pagination)
    except ShelbyError as e:
        handle_domain_error(ctx, e)
    echo_page(
        page,
        lambda d: f"ID: {d.id:4d} | {d.filename:30s} | {d.size:>10d} bytes | refs {d.reference_count}",
        "No documents found.",
    )


def register_commands(cli):
    """Register document commands with main CLI."""
    cli.add_command(document_group, name="document")
