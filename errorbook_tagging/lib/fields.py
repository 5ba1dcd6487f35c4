"""
Field helpers with consistent comparison rules across database backends.

Tag names are mostly Chinese text. MySQL's default ``*_ci`` collations fold
full-width and half-width characters together and ignore case, while SQLite
compares bytes. The tag rebuild joins rows on ``(name, subject)``, so both
backends must agree on when two names are equal: we force a binary collation.
"""
from __future__ import annotations

from django.db import models


class ExactMatchCharField(models.CharField):
    """
    CharField that sorts and compares values byte-for-byte.

    Django's ``db_collation`` takes a single value, which is no use when tests
    run on SQLite and production runs on MySQL, so the collation is picked per
    database vendor instead.
    """

    vendor_collations = {
        "sqlite": "BINARY",
        "mysql": "utf8mb4_bin",
    }

    def db_parameters(self, connection):
        """
        Add the collation for the current database vendor, if we know one.
        """
        db_params = super().db_parameters(connection)
        collation = self.vendor_collations.get(connection.vendor)
        if collation:
            db_params["collation"] = collation
        return db_params


def exact_char_field(**kwargs) -> ExactMatchCharField:
    """
    Return a non-null ``ExactMatchCharField``; any keyword may be overridden.
    """
    final_kwargs = {"null": False}
    final_kwargs.update(kwargs)
    return ExactMatchCharField(**final_kwargs)
