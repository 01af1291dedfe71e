"""Custom exceptions for the retirement projection engine."""


class ProjectionError(Exception):
    """Base exception for projection and tax-resolution errors."""


class InvalidYearRangeError(ProjectionError):
    """Raised when a requested year range is empty or outside the plan timeline."""

    def __init__(self, start_year: int, end_year: int, message: str | None = None):
        self.start_year = start_year
        self.end_year = end_year
        detail = message or "end year precedes start year"
        super().__init__(f"Invalid year range {start_year}-{end_year}: {detail}")


class TableLookupError(ProjectionError):
    """Raised when a value falls outside a static lookup table (RMD, SLE, brackets)."""

    def __init__(self, table: str, key: object):
        self.table = table
        self.key = key
        super().__init__(f"No entry for {key!r} in {table}")


class UnknownJurisdictionError(TableLookupError):
    """Raised when an heir's state has no entry in the state tax table."""

    def __init__(self, state: str):
        self.state = state
        super().__init__("STATE_TAX_RATES", state)


class ParameterValidationError(ProjectionError):
    """Raised when a parameter set fails validation."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error on '{field}': {message}")


class ProfileMigrationError(ProjectionError):
    """Raised when a saved profile cannot be upgraded to the current schema."""

    def __init__(self, message: str):
        super().__init__(f"Profile migration error: {message}")


class UnknownFieldError(ProjectionError):
    """Raised when an explain/export request names a field that is not on YearRecord."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Unknown projection field: {field}")


class UnknownToolError(ProjectionError):
    """Raised when the query layer receives a tool name it does not implement."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")
