"""Error taxonomy shared by the pipeline stages."""

from __future__ import annotations


class InfoCommanderError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(InfoCommanderError):
    """Mandatory configuration is missing; fatal at startup."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required configuration: {', '.join(self.missing)}")


class ReadError(InfoCommanderError):
    """A source could not be fetched, parsed or decoded."""

    def __init__(self, cause: str, source: str | None = None):
        self.cause = cause
        self.source = source
        super().__init__(cause)


_PERMISSION_CODES = {401, 403, 404}
_BUSY_CODES = {409, 429, 500, 502, 503}


class GenerationError(InfoCommanderError):
    """The hosted generation API rejected or failed the request.

    Attributes:
        status_code: Provider HTTP status, or None for network-level failures
        detail: Raw provider message
    """

    def __init__(self, detail: str, status_code: int | None = None):
        self.detail = detail
        self.status_code = status_code
        label = f"{status_code}: " if status_code is not None else ""
        super().__init__(f"{label}{detail}")

    def user_message(self) -> str:
        """Map the provider status to a message fit for a chat reply."""
        if self.status_code in _PERMISSION_CODES:
            return (
                f"Permission error ({self.status_code}): this API key cannot use "
                "the configured model."
            )
        if self.status_code in _BUSY_CODES:
            return f"The generation service is busy ({self.status_code}), try again shortly."
        return str(self)
