from __future__ import annotations

from enum import Enum

from sqlalchemy import Enum as SAEnum


def choice_column_type(enum_cls: type[Enum]) -> SAEnum:
    """Store a ``str`` enum by value in a plain VARCHAR column.

    ``native_enum=False`` keeps SQLite and Postgres schemas identical and lets
    new members be added without an ALTER TYPE.
    """

    return SAEnum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
