"""
Error types raised while loading a data model and converging the database.

Request-time errors live next to the runtime code that raises them
(``runtime.validation``, ``runtime.repository``, ``runtime.pagination``).
"""


class CoreDataError(Exception):
    """Base exception for all coredata-rest errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(CoreDataError):
    """
    Raised when the data model cannot be turned into a running service.

    Examples:
    - Relationship destination that names no entity
    - Two entities normalizing to the same record key
    - Column name collisions within one entity
    - Malformed model description

    Always fatal at startup; the application must not begin serving.
    """


class MigrationError(CoreDataError):
    """Raised when the database rejects a DDL statement during convergence."""

    def __init__(self, message: str, table: str | None = None):
        self.table = table
        super().__init__(message)
