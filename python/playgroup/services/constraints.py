"""Constraint-name extraction for IntegrityError translation.

Each ledger maps the constraint that rejected its insert to a domain error.
psycopg exposes the violated constraint through ``diag``; when it does not
(other drivers, wrapped errors) the exception text is searched for the
names the caller cares about.
"""

from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError


def violated_constraint(e: IntegrityError, known: Iterable[str]) -> str | None:
    """Return the name of the constraint behind an IntegrityError, if known."""
    diag = getattr(e.orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None)
    if constraint_name:
        return constraint_name

    msg = str(e.orig) if e.orig else str(e)
    for name in known:
        if name in msg:
            return name
    return None
