"""Unit tests for role label normalization."""

import pytest

from playingxi.roles import Role, parse_role


@pytest.mark.parametrize(
    "label,expected",
    [
        ("KEEPER", Role.KEEPER),
        ("bowling_allrounder", Role.BOWLING_ALLROUNDER),
        ("Wicket-Keeper", Role.KEEPER),
        ("WK-Batter", Role.KEEPER),
        ("Batsman", Role.BATTER),
        ("Batting All-Rounder", Role.BATTING_ALLROUNDER),
        ("Bowling Allrounder", Role.BOWLING_ALLROUNDER),
        ("  bowler ", Role.BOWLER),
    ],
)
def test_parse_role_labels(label, expected):
    assert parse_role(label) is expected


def test_parse_role_passes_enum_through():
    assert parse_role(Role.BATTER) is Role.BATTER


def test_parse_role_rejects_unknown():
    """Unknown labels fail loudly instead of being guessed from substrings."""
    with pytest.raises(ValueError):
        parse_role("Keeper-ish Spinner")


@pytest.mark.parametrize("label", ["All-rounder", "allrounder", "All Rounder"])
def test_parse_role_rejects_unqualified_allrounder(label):
    with pytest.raises(ValueError):
        parse_role(label)
