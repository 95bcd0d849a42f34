class FilingsError(Exception):
    """Base class for every error raised by the filings toolkit."""


class ConfigurationError(FilingsError, ValueError):
    """A required parameter or setting is missing or invalid."""


class XBRLParseError(FilingsError, ValueError):
    """A filing document could not be parsed at all."""


class UpstreamFetchError(FilingsError):
    """A single request to EDINET or DART failed."""

    def __init__(self, message: str, status: str = None):
        super().__init__(message)
        self.status = status


class EdinetAPIError(UpstreamFetchError):
    pass


class DartAPIError(UpstreamFetchError):
    pass


class NoDataError(FilingsError):
    """No filing or period yielded usable facts."""
