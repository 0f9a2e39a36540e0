class RankerError(Exception):
    """Base class for every error the ranker surfaces to the user."""


class UnsupportedFormat(RankerError):
    """File type is neither PDF nor DOCX; the file is skipped."""


class ExtractionFailed(RankerError):
    """A PDF/DOCX could not be decoded into text."""


class ConfigurationError(RankerError):
    """The analysis provider is missing its API credential."""


class AnalysisFailed(RankerError):
    """The completion service call errored (network, quota, service-side)."""


class MalformedResponse(AnalysisFailed):
    """The completion response did not match the analysis schema."""
