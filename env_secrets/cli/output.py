"""Render command results as JSON or as an aligned text table."""
import json
from typing import Any, Dict, List, NamedTuple, Sequence

from ..secrets.domains.errors import ValidationError
from ..secrets.domains.models import OutputFormat

NO_RESULTS = "No results."


class Column(NamedTuple):
    key: str
    label: str


def parse_output_format(value: str) -> OutputFormat:
    """Validate an --output value."""
    try:
        return OutputFormat(value)
    except ValueError:
        raise ValidationError(f'Invalid output format "{value}". Use "json" or "table".')


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def render_json(rows: List[Dict[str, Any]]) -> str:
    return json.dumps(rows, indent=2)


def render_table(columns: Sequence[Column], rows: List[Dict[str, Any]]) -> str:
    """
    Render rows as fixed-width columns separated by two spaces.

    Output is a header line, a dash divider and one line per row. Missing
    cells render empty.
    """
    if not rows:
        return NO_RESULTS

    widths = [
        max([len(column.label)] + [len(_cell(row.get(column.key))) for row in rows])
        for column in columns
    ]

    header = "  ".join(column.label.ljust(width) for column, width in zip(columns, widths))
    divider = "  ".join("-" * width for width in widths)
    lines = [
        "  ".join(_cell(row.get(column.key)).ljust(width) for column, width in zip(columns, widths))
        for row in rows
    ]
    return "\n".join([header, divider] + lines)


def print_data(output_format: OutputFormat, columns: Sequence[Column], rows: List[Dict[str, Any]]) -> None:
    if output_format == OutputFormat.JSON:
        print(render_json(rows))
    else:
        print(render_table(columns, rows))
