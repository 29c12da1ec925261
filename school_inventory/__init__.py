"""School technology equipment inventory service.

The package is organised the way requests flow through it:

* ``core``: configuration, enumerations, errors, logging, JWT helpers.
* ``db`` and ``models``: SQLAlchemy engine, sessions and tables.
* ``crud``: catalog, directory and history persistence helpers.
* ``services``: the movement ledger, notification dispatcher, reports and
  the assistant relay.
* ``routers``, ``deps`` and ``middlewares``: the FastAPI surface.

The ASGI application lives in ``school_inventory.main:app``.
"""

__version__ = "0.1.0"
