"""Tests for JSON/table output rendering."""
import json

import pytest

from env_secrets.cli.output import Column, parse_output_format, print_data, render_json, render_table
from env_secrets.secrets.domains.errors import ValidationError
from env_secrets.secrets.domains.models import OutputFormat


COLUMNS = [Column("name", "Name"), Column("arn", "ARN")]


class TestRenderTable:
    """Test suite for render_table."""

    def test_no_rows(self):
        """Test that zero rows render a fixed message for any column set."""
        assert render_table(COLUMNS, []) == "No results."
        assert render_table([], []) == "No results."
        assert render_table([Column("x", "A very long label")], []) == "No results."

    def test_widths_and_padding(self):
        """Test that columns are padded to the widest cell or label."""
        rows = [
            {"name": "a", "arn": "arn:1"},
            {"name": "longer-name", "arn": "x"},
        ]
        lines = render_table(COLUMNS, rows).split("\n")

        assert lines == [
            "Name         ARN  ",
            "-----------  -----",
            "a            arn:1",
            "longer-name  x    ",
        ]

    def test_missing_cells_render_empty(self):
        """Test that None and absent values render as empty strings."""
        rows = [{"name": "only-name", "arn": None}, {"name": "n"}]
        lines = render_table(COLUMNS, rows).split("\n")

        assert lines[0] == "Name       ARN"
        assert lines[1] == "---------  ---"
        assert lines[2] == "only-name     "
        assert lines[3] == "n             "


class TestRenderJson:
    """Test suite for render_json."""

    def test_two_space_indent(self):
        """Test that rows are dumped unchanged with a two-space indent."""
        rows = [{"name": "a", "arn": None}]
        output = render_json(rows)

        assert output == json.dumps(rows, indent=2)
        assert '\n    "name": "a"' in output
        assert json.loads(output) == rows


class TestOutputFormat:
    """Test suite for output format parsing and printing."""

    def test_valid_formats(self):
        """Test that json and table are accepted."""
        assert parse_output_format("json") == OutputFormat.JSON
        assert parse_output_format("table") == OutputFormat.TABLE

    def test_invalid_format(self):
        """Test that anything else fails fast."""
        with pytest.raises(ValidationError) as exc_info:
            parse_output_format("yaml")

        assert 'Invalid output format "yaml"' in str(exc_info.value)

    def test_print_data_json(self, capsys):
        """Test that JSON mode prints the rows as JSON."""
        print_data(OutputFormat.JSON, COLUMNS, [{"name": "a"}])

        assert json.loads(capsys.readouterr().out) == [{"name": "a"}]

    def test_print_data_table(self, capsys):
        """Test that table mode prints the table."""
        print_data(OutputFormat.TABLE, COLUMNS, [])

        assert capsys.readouterr().out == "No results.\n"
