"""Unit tests for repository slug and issue reference utilities."""

from __future__ import annotations

import pytest

from bosun.common.slug import issue_ref, parse_issue_ref, parse_repo_slug, repo_slug


def test_repo_slug_combines_owner_and_name() -> None:
    """repo_slug returns owner/name format."""
    assert repo_slug("octo", "reef") == "octo/reef"


def test_parse_repo_slug_splits_owner_and_name() -> None:
    """parse_repo_slug returns (owner, name) for valid slugs."""
    assert parse_repo_slug("Owner-Org/Repo_Name") == ("Owner-Org", "Repo_Name")


@pytest.mark.parametrize(
    "slug",
    ["", "   ", "/", "invalid", "owner/name/extra", "owner/", "/name"],
)
def test_parse_repo_slug_rejects_invalid_slugs(slug: str) -> None:
    """parse_repo_slug raises ValueError for invalid slugs."""
    with pytest.raises(ValueError, match="Invalid repository slug"):
        parse_repo_slug(slug)


def test_issue_ref_appends_number() -> None:
    """issue_ref returns owner/name#number format."""
    assert issue_ref("octo", "reef", 7) == "octo/reef#7"


def test_parse_issue_ref_round_trips_with_whitespace() -> None:
    """parse_issue_ref tolerates surrounding whitespace."""
    assert parse_issue_ref("  octo/reef#12\n") == ("octo", "reef", 12)


@pytest.mark.parametrize(
    "ref",
    ["octo/reef", "octo/reef#", "octo/reef#0", "octo/reef#-3", "octo/reef#abc"],
)
def test_parse_issue_ref_rejects_bad_numbers(ref: str) -> None:
    """Missing or non-positive issue numbers are rejected."""
    with pytest.raises(ValueError, match="Invalid issue reference"):
        parse_issue_ref(ref)


def test_parse_issue_ref_rejects_bad_slug() -> None:
    """The slug part is validated like a repository slug."""
    with pytest.raises(ValueError, match="Invalid repository slug"):
        parse_issue_ref("reef#12")
