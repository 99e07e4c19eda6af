"""Markdown exporter: renders a document as a Markdown reference page."""

import json

from api_doc_builder.document.base import Document, Example, ExampleKind, Method

RESOURCE_SUFFIX = "Rsrc"

JSON_EXAMPLE_KINDS = (ExampleKind.BODY, ExampleKind.RETURN)


def export_markdown(document: Document) -> str:
    """Render the whole document, methods in list order."""
    parts = [
        f"# {document.resource_name}{RESOURCE_SUFFIX}",
        "## Description",
        document.general_description.auth,
        f"Base URL: {document.general_description.base_url}",
        document.general_description.rules,
    ]
    for method in document.methods:
        parts.extend(_render_method(method))
    return "\n\n".join(parts) + "\n"


def default_markdown_filename(document: Document) -> str:
    return f"{document.resource_name or 'document'}{RESOURCE_SUFFIX}.md"


def _render_method(method: Method) -> list[str]:
    parts = [f"## Method {method.name}", f"**Purpose:**\n\n{method.purpose}"]

    if method.input_parameters:
        rows = [
            [p.name, p.format, "S" if p.required else "N", p.description]
            for p in method.input_parameters
        ]
        parts.append("**Input parameters**")
        parts.append(_table(["Name", "Format", "Required", "Description"], rows))

    if method.validations:
        rows = [[v.field_name, v.description.replace("\n", " ")] for v in method.validations]
        parts.append("**Validations**")
        parts.append(_table(["Name", "Validation"], rows))

    if method.output_parameters:
        rows = [[p.name, p.type, p.description] for p in method.output_parameters]
        parts.append("**Output parameters**")
        parts.append(_table(["Name", "Type / Size", "Description"], rows))

    if method.description_blocks:
        parts.append("**Description**")
        parts.extend(block.content for block in method.description_blocks)

    for example in method.examples:
        if example.description:
            parts.append(f"**{example.description}**")
        parts.append(_render_example(example))

    return parts


def _table(headers: list[str], rows: list[list[str]]) -> str:
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("-" * (len(h) + 2) for h in headers) + "|",
    ]
    for row in rows:
        lines.append("| " + " | ".join(row) + " |")
    return "\n".join(lines)


def _render_example(example: Example) -> str:
    if example.kind not in JSON_EXAMPLE_KINDS:
        return f"```\n{example.content}\n```"
    return f"```json\n{_pretty_json(example.content)}\n```"


def _pretty_json(content: str) -> str:
    """Re-indent JSON object content; anything unparseable is kept verbatim."""
    if not content.strip().startswith("{"):
        return content
    try:
        return json.dumps(json.loads(content), indent=2, ensure_ascii=False)
    except json.JSONDecodeError:
        return content
