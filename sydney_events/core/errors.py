class ScrapeError(Exception):
    """Base class for failures raised inside the ingestion core."""


class FetchFailed(ScrapeError):
    """Navigation, timeout, HTTP status or wait-selector failure."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"fetch failed for {url}: {reason}")
        self.url = url
        self.reason = reason


class ParseFailed(ScrapeError):
    """A single listing node could not be turned into a candidate."""


class PersistenceFailed(ScrapeError):
    """The catalog store rejected a lookup, insert, update or sweep."""


class SourceFailed(ScrapeError):
    """A source's scrape or reconcile step escaped its own error handling."""

    def __init__(self, source: str, cause: BaseException):
        super().__init__(f"{source}: {cause}")
        self.source = source
        self.cause = cause
