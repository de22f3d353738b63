"""Error types raised by the ingestion path."""


class ConfigurationError(RuntimeError):
    """Required configuration (API token, database URL) is missing."""


class ProviderError(Exception):
    """The statistics provider returned a non-2xx or unusable response.

    ``status_code`` is None when no HTTP response was received at all
    (timeout, connection failure).
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"{base} (HTTP {self.status_code})"


class PersistenceError(Exception):
    """A single upsert failed. Callers log and count it, then carry on."""

    def __init__(self, table: str, key: tuple, cause: Exception):
        super().__init__(f"Failed to upsert into {table} for key {key}: {cause}")
        self.table = table
        self.key = key
        self.cause = cause
