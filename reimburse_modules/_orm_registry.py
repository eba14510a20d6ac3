"""
Module ORM Registry (``reimburse_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` holds its table before tables are created.

Architecture position
---------------------
**Modules layer** -- utility.  Imports module ORM packages and
``reimburse_kernel.db.engine`` (modules -> kernel is allowed).  MUST NOT be
imported by ``reimburse_kernel`` or ``reimburse_engines``.
"""


def import_all_orm_models() -> None:
    """Import every ``reimburse_modules.*.orm`` module.  Idempotent."""
    import reimburse_modules.policy.orm  # noqa: F401


def create_all_tables() -> None:
    """Register all module ORM models, then create every table.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    """
    from reimburse_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables()
