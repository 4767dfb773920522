"""Time helpers built on pendulum."""

from __future__ import annotations

from datetime import datetime

import pendulum


def utcnow() -> pendulum.DateTime:
    return pendulum.now("UTC")


def as_utc(value: datetime) -> pendulum.DateTime:
    """Return ``value`` as an aware UTC pendulum datetime.

    Naive values are taken to already be UTC; this is how SQLite hands back
    timestamps written as UTC.
    """
    if value.tzinfo is None:
        return pendulum.instance(value, tz="UTC")
    return pendulum.instance(value).in_timezone("UTC")
