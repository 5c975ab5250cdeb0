# backend/slotbook/core/exceptions.py
"""
Infrastructure exceptions for the booking engine.

Expected business outcomes (validation, conflicts, ownership) are returned as
values, see ``slotbook.core.results``. Only failures nobody can act on at the
call site, such as a lost database connection, travel as exceptions.
"""


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """


def is_db_pool_exhaustion(exc: Exception) -> bool:
    """
    Check if an exception indicates DB connection pool exhaustion.

    This is a common failure mode under high load when all database
    connections are in use and new requests time out waiting.
    """
    error_str = str(exc).lower()
    return "queuepool" in error_str or (
        "timeout" in error_str and ("connection" in error_str or "pool" in error_str)
    )
