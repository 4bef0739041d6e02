"""Tests for CLI date filter helper."""

from datetime import date

import click
import pytest

from contave.cli.date_filters import resolve_cli_date_range
from contave.utils.date_parser import get_date_range


def _ctx() -> click.Context:
    return click.Context(click.Command("test"))


def test_rejects_multiple_period_flags(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            date_from=None,
            date_to=None,
            period_flags={"this-month": True, "last-month": True},
        )

    assert excinfo.value.exit_code == 1
    assert "Only one of" in capsys.readouterr().err


def test_rejects_period_flag_with_dates(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            date_from="2024-01-01",
            date_to=None,
            period_flags={"this-month": True},
        )

    assert excinfo.value.exit_code == 1
    assert "cannot be combined" in capsys.readouterr().err


def test_returns_period_range():
    result = resolve_cli_date_range(
        _ctx(), date_from=None, date_to=None, period_flags={"last-year": True}
    )

    assert result == get_date_range("last-year")


def test_parses_explicit_dates():
    result = resolve_cli_date_range(
        _ctx(), date_from="2024-01-02", date_to="05/01/2024", period_flags={}
    )

    assert result == (date(2024, 1, 2), date(2024, 1, 5))


def test_open_ended_range():
    result = resolve_cli_date_range(_ctx(), date_from=None, date_to="2024-01-31", period_flags={})

    assert result == (None, date(2024, 1, 31))


def test_nothing_given():
    assert resolve_cli_date_range(_ctx(), date_from=None, date_to=None, period_flags={}) == (None, None)


def test_invalid_start_date(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(_ctx(), date_from="not-a-date", date_to=None, period_flags={})

    assert excinfo.value.exit_code == 1
    assert "Invalid start date" in capsys.readouterr().err


def test_reversed_range(capsys):
    with pytest.raises(click.exceptions.Exit):
        resolve_cli_date_range(
            _ctx(), date_from="2024-02-01", date_to="2024-01-01", period_flags={}
        )

    assert "is after --to" in capsys.readouterr().err
