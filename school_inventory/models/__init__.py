"""Importing this package registers every table with ``Base.metadata``."""

from . import directory, equipment, history, movement, notification, registry  # noqa: F401
