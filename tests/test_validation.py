"""Tests for identifier validation and quoting."""

import pytest

from stageload.database.validation import is_valid_identifier, quote_identifier, validate_identifier


class TestValidateIdentifier:

    @pytest.mark.parametrize("name", ["events", "_tmp", "dbo.events", "SALES$2024", "t#1"])
    def test_accepts(self, name):
        assert validate_identifier(name) == name

    @pytest.mark.parametrize(
        "name",
        ["", "  ", "1events", "a.b.c", "events;", "ev ents", 'ev"ents', "x" * 129, "../etc"],
    )
    def test_rejects(self, name):
        with pytest.raises(ValueError):
            validate_identifier(name)

    def test_is_valid_identifier(self):
        assert is_valid_identifier("events")
        assert not is_valid_identifier("drop table")


class TestQuoteIdentifier:

    @pytest.mark.parametrize(
        "dialect, expected",
        [
            ("postgresql", '"sales"."events"'),
            ("sqlserver", "[sales].[events]"),
            ("mysql", "`sales`.`events`"),
            ("oracle", "sales.events"),
        ],
    )
    def test_dialects(self, dialect, expected):
        assert quote_identifier("sales.events", dialect) == expected

    def test_unknown_dialect(self):
        with pytest.raises(ValueError, match="Unsupported dialect"):
            quote_identifier("events", "db2")

    def test_validates_before_quoting(self):
        with pytest.raises(ValueError):
            quote_identifier('events"; DROP TABLE x; --')
