"""CLI entry point for api-doc-builder."""

import logging
from pathlib import Path

import click

from api_doc_builder.config import Settings, configure_logging, get_settings
from api_doc_builder.document.base import Document, ExampleKind, Method
from api_doc_builder.document.history import HistoryLedger
from api_doc_builder.document.importer import (
    DocumentImportError,
    default_json_filename,
    dump_document,
    load_document,
)
from api_doc_builder.document.store import ITEM_COLLECTIONS, DocumentStore
from api_doc_builder.document.version import INCREMENT_KINDS, format_version
from api_doc_builder.exporter.markdown import default_markdown_filename, export_markdown
from api_doc_builder.storage.keyvalue import JsonFileStore
from api_doc_builder.storage.state import StatePersistence

logger = logging.getLogger(__name__)

HTTP_VERBS = ["GET", "POST", "PUT", "DELETE"]


def _open_store(storage_path: Path, settings: Settings) -> DocumentStore:
    """Load the persisted store and wire write-through persistence."""
    persistence = StatePersistence(JsonFileStore(storage_path), key=settings.storage_key)
    state = persistence.load()
    if state is None:
        logger.info(f"No saved state in {storage_path}, starting a new document")
        store = DocumentStore(history=HistoryLedger(limit=settings.history_limit))
        persistence.save(store.state())
    else:
        store = DocumentStore.from_state(state, history_limit=settings.history_limit)
    store.subscribe(persistence.save)
    return store


def _require_document(store: DocumentStore) -> Document:
    if store.document is None:
        raise click.ClickException("No active document. Run 'api-doc-builder new' first.")
    return store.document


def _require_method(store: DocumentStore, method_id: str) -> Method:
    method = _require_document(store).find_method(method_id)
    if method is None:
        raise click.ClickException(f"No method with id {method_id}")
    return method


@click.group()
@click.option("--storage", "storage_path", default=None, type=click.Path(dir_okay=False, path_type=Path), help="State file (defaults to the user data dir).")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, storage_path: Path | None, verbose: bool):
    """API Doc Builder: author API method documentation with versioned checkpoints."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)
    ctx.obj = _open_store(storage_path or settings.storage_path, settings)


@main.command()
@click.confirmation_option(prompt="Start a new document? Unsaved changes to the current one are lost.")
@click.pass_obj
def new(store: DocumentStore):
    """Replace the active document with an empty one."""
    document = store.reset_document()
    click.echo(f"Started new document {document.id} ({format_version(document.version)})")


@main.command()
@click.pass_obj
def show(store: DocumentStore):
    """Show the active document and its methods."""
    document = _require_document(store)
    click.echo(f"{document.resource_name or '(unnamed)'} {format_version(document.version)}")
    click.echo(f"Base URL: {document.general_description.base_url}")
    click.echo(f"Updated: {document.updated_at.isoformat()}")
    if not document.methods:
        click.echo("No methods yet.")
    for method in document.methods:
        marker = "*" if method.id == store.current_method_id else " "
        click.echo(f"{marker} {method.http_verb:<6} {method.name}  [{method.id}]")


@main.command()
@click.option("--name", "resource_name", default=None, help="Resource name.")
@click.option("--auth", default=None, help="Authentication line.")
@click.option("--base-url", default=None, help="Base URL.")
@click.option("--rules", default=None, help="General rules paragraph.")
@click.pass_obj
def set_header(store: DocumentStore, resource_name: str | None, auth: str | None, base_url: str | None, rules: str | None):
    """Edit the document header."""
    document = _require_document(store)
    description_changes = {k: v for k, v in (("auth", auth), ("base_url", base_url), ("rules", rules)) if v is not None}
    if resource_name is None and not description_changes:
        raise click.UsageError("Nothing to update: pass --name, --auth, --base-url or --rules.")

    changes = {}
    if resource_name is not None:
        changes["resource_name"] = resource_name
    if description_changes:
        changes["general_description"] = document.general_description.model_copy(update=description_changes)
    store.update_document(**changes)
    click.echo("Header updated.")


@main.command()
@click.argument("name", default="newMethod")
@click.option("--verb", default="POST", type=click.Choice(HTTP_VERBS, case_sensitive=False), help="HTTP verb.")
@click.option("--purpose", default="", help="What the method is for.")
@click.pass_obj
def add_method(store: DocumentStore, name: str, verb: str, purpose: str):
    """Append a method and select it."""
    _require_document(store)
    method = Method(name=name, http_verb=verb.upper(), purpose=purpose)
    store.add_method(method)
    click.echo(f"Added method {method.name} [{method.id}]")


@main.command()
@click.argument("method_id")
@click.option("--name", default=None, help="New method name.")
@click.option("--verb", default=None, type=click.Choice(HTTP_VERBS, case_sensitive=False), help="New HTTP verb.")
@click.option("--purpose", default=None, help="New purpose text.")
@click.pass_obj
def update_method(store: DocumentStore, method_id: str, name: str | None, verb: str | None, purpose: str | None):
    """Edit a method's name, verb or purpose."""
    _require_method(store, method_id)
    changes = {k: v for k, v in (("name", name), ("http_verb", verb and verb.upper()), ("purpose", purpose)) if v is not None}
    store.update_method(method_id, **changes)
    click.echo(f"Updated method {method_id}")


@main.command()
@click.argument("method_id")
@click.pass_obj
def delete_method(store: DocumentStore, method_id: str):
    """Delete a method."""
    _require_method(store, method_id)
    store.delete_method(method_id)
    click.echo(f"Deleted method {method_id}")


@main.command()
@click.argument("method_id", required=False)
@click.pass_obj
def select(store: DocumentStore, method_id: str | None):
    """Select a method (no argument clears the selection)."""
    if method_id is not None:
        _require_method(store, method_id)
    store.set_current_method(method_id)
    click.echo(f"Selected {method_id}" if method_id else "Selection cleared.")


@main.command()
@click.argument("method_id")
@click.argument("name")
@click.option("--format", "fmt", default="char(16)", help="Field format, e.g. char(16).")
@click.option("--required/--optional", default=False, help="Whether the parameter is mandatory.")
@click.option("--description", default="", help="Parameter description.")
@click.pass_obj
def add_input(store: DocumentStore, method_id: str, name: str, fmt: str, required: bool, description: str):
    """Add an input parameter to a method."""
    _require_method(store, method_id)
    item = store.add_item(method_id, "input_parameters", {"name": name, "format": fmt, "required": required, "description": description})
    click.echo(f"Added input parameter {name} [{item.id}]")


@main.command()
@click.argument("method_id")
@click.argument("name")
@click.option("--type", "type_", default="char(16)", help="Field type / size.")
@click.option("--description", default="", help="Parameter description.")
@click.pass_obj
def add_output(store: DocumentStore, method_id: str, name: str, type_: str, description: str):
    """Add an output parameter to a method."""
    _require_method(store, method_id)
    item = store.add_item(method_id, "output_parameters", {"name": name, "type": type_, "description": description})
    click.echo(f"Added output parameter {name} [{item.id}]")


@main.command()
@click.argument("method_id")
@click.argument("field_name")
@click.option("--description", default="", help="What is validated.")
@click.pass_obj
def add_validation(store: DocumentStore, method_id: str, field_name: str, description: str):
    """Add a validation rule to a method."""
    _require_method(store, method_id)
    item = store.add_item(method_id, "validations", {"field_name": field_name, "description": description})
    click.echo(f"Added validation {field_name} [{item.id}]")


@main.command()
@click.argument("method_id")
@click.option("--kind", default="header", type=click.Choice([k.value for k in ExampleKind]), help="Example kind.")
@click.option("--description", default=None, help="Caption shown above the example.")
@click.option("--content", default=None, help="Example content.")
@click.option("--from-file", "content_file", default=None, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Read the content from a file.")
@click.pass_obj
def add_example(store: DocumentStore, method_id: str, kind: str, description: str | None, content: str | None, content_file: Path | None):
    """Add a request/response example to a method."""
    _require_method(store, method_id)
    if content_file is not None:
        content = content_file.read_text(encoding="utf-8")
    item = store.add_item(method_id, "examples", {"kind": kind, "description": description, "content": content or ""})
    click.echo(f"Added {kind} example [{item.id}]")


@main.command()
@click.argument("method_id")
@click.argument("collection", type=click.Choice(sorted(ITEM_COLLECTIONS)))
@click.argument("item_id")
@click.pass_obj
def remove_item(store: DocumentStore, method_id: str, collection: str, item_id: str):
    """Remove one item from a method collection."""
    _require_method(store, method_id)
    store.delete_item(method_id, collection, item_id)
    click.echo(f"Removed {item_id} from {collection}")


@main.command()
@click.argument("method_id")
@click.argument("collection", type=click.Choice(sorted(ITEM_COLLECTIONS)))
@click.argument("from_index", type=int)
@click.argument("to_index", type=int)
@click.pass_obj
def move_item(store: DocumentStore, method_id: str, collection: str, from_index: int, to_index: int):
    """Move an item within a method collection (0-based positions)."""
    method = _require_method(store, method_id)
    size = len(getattr(method, collection))
    if not (0 <= from_index < size and 0 <= to_index < size):
        raise click.BadParameter(f"positions must be between 0 and {size - 1}", param_hint="FROM_INDEX/TO_INDEX")
    store.move_item(method_id, collection, from_index, to_index)
    click.echo(f"Moved {collection}[{from_index}] to position {to_index}")


@main.command()
@click.argument("method_id")
@click.argument("text_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def set_description(store: DocumentStore, method_id: str, text_path: Path):
    """Replace a method's flow description; blank lines separate blocks."""
    _require_method(store, method_id)
    store.set_description_text(method_id, text_path.read_text(encoding="utf-8"))
    click.echo(f"Description updated for {method_id}")


@main.command()
@click.argument("description")
@click.option("--kind", default="patch", type=click.Choice(INCREMENT_KINDS), help="Which version counter to increment.")
@click.option("--author", default=None, help="Author recorded with the checkpoint.")
@click.pass_obj
def save_version(store: DocumentStore, description: str, kind: str, author: str | None):
    """Save a checkpoint and increment the document version."""
    if not description.strip():
        raise click.BadParameter("must not be empty", param_hint="DESCRIPTION")
    _require_document(store)
    entry = store.save_version(description, kind, author=author)
    click.echo(f"Saved {format_version(entry.version)} as [{entry.id}]; document is now {format_version(store.document.version)}")


@main.command()
@click.pass_obj
def history(store: DocumentStore):
    """List saved checkpoints, newest first."""
    if not len(store.history):
        click.echo("No saved versions.")
        return
    for entry in store.history:
        author = f" by {entry.author}" if entry.author else ""
        click.echo(
            f"{format_version(entry.version)}  {entry.timestamp.isoformat()}  [{entry.id}]  "
            f"{entry.description}{author}  ({len(entry.document.methods)} methods)"
        )
    click.echo(f"Total versions: {len(store.history)} / {store.history.limit}")


@main.command()
@click.argument("entry_id")
@click.pass_obj
def restore(store: DocumentStore, entry_id: str):
    """Restore a checkpoint (the current document is backed up first)."""
    document = store.restore_version(entry_id)
    if document is None:
        raise click.ClickException(f"No saved version with id {entry_id}")
    click.echo(f"Restored {format_version(document.version)}")


@main.command()
@click.confirmation_option(prompt="Delete every saved version?")
@click.pass_obj
def clear_history(store: DocumentStore):
    """Delete all saved checkpoints."""
    store.clear_history()
    click.echo("History cleared.")


@main.command("import")
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def import_document(store: DocumentStore, doc_path: Path):
    """Replace the active document with one read from a JSON file."""
    try:
        document = load_document(doc_path)
    except DocumentImportError as e:
        raise click.ClickException(f"Invalid document file: {e}") from e
    store.set_document(document)
    click.echo(f"Imported {document.resource_name} with {len(document.methods)} methods")


@main.command()
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Output JSON file.")
@click.pass_obj
def export_json(store: DocumentStore, output: Path | None):
    """Write the active document as JSON."""
    document = _require_document(store)
    output = output or Path(default_json_filename(document))
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(dump_document(document), encoding="utf-8")
    click.echo(f"Document exported to {output}")


@main.command()
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Output Markdown file.")
@click.pass_obj
def export_md(store: DocumentStore, output: Path | None):
    """Write the active document as Markdown."""
    document = _require_document(store)
    output = output or Path(default_markdown_filename(document))
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(export_markdown(document), encoding="utf-8")
    click.echo(f"Markdown saved to {output}")


@main.command()
@click.pass_obj
def toggle_dark_mode(store: DocumentStore):
    """Flip the dark-mode preference."""
    enabled = store.toggle_dark_mode()
    click.echo(f"Dark mode {'on' if enabled else 'off'}")
