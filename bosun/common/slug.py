"""Repository slug and issue reference utilities.

Repository slugs are GitHub identifiers in ``owner/name`` format and issue
references extend them as ``owner/name#number``. They are not filesystem
paths, even though they use ``/`` as a separator, so they should be parsed
using these helpers rather than ``pathlib``.
"""

from __future__ import annotations


def repo_slug(owner: str, name: str) -> str:
    """Build a repository slug from owner and name.

    Examples
    --------
    >>> repo_slug("octo", "reef")
    'octo/reef'

    """
    return f"{owner}/{name}"


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """Parse a repository slug into owner and name.

    Parameters
    ----------
    slug:
        Repository slug in ``owner/name`` format.

    Returns
    -------
    tuple[str, str]
        ``(owner, name)``.

    Raises
    ------
    ValueError
        If the slug is not in ``owner/name`` format.

    Examples
    --------
    >>> parse_repo_slug("octo/reef")
    ('octo', 'reef')

    """
    if slug.count("/") != 1:
        msg = f"Invalid repository slug: expected 'owner/name', got {slug!r}"
        raise ValueError(msg)

    owner, name = slug.split("/")
    if not owner.strip() or not name.strip():
        msg = f"Invalid repository slug: expected 'owner/name', got {slug!r}"
        raise ValueError(msg)

    return owner, name


def issue_ref(owner: str, name: str, number: int) -> str:
    """Build an ``owner/name#number`` issue reference."""
    return f"{repo_slug(owner, name)}#{number}"


def parse_issue_ref(ref: str) -> tuple[str, str, int]:
    """Parse an ``owner/name#number`` issue reference.

    Raises
    ------
    ValueError
        If the reference is malformed or the number is not a positive integer.

    Examples
    --------
    >>> parse_issue_ref("octo/reef#12")
    ('octo', 'reef', 12)

    """
    slug, sep, raw_number = ref.strip().partition("#")
    if not sep:
        msg = f"Invalid issue reference: expected 'owner/name#number', got {ref!r}"
        raise ValueError(msg)
    owner, name = parse_repo_slug(slug)
    if not raw_number.isdigit() or int(raw_number) < 1:
        msg = f"Invalid issue reference: expected 'owner/name#number', got {ref!r}"
        raise ValueError(msg)
    return owner, name, int(raw_number)
