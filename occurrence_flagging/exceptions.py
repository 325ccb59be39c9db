"""Custom exception classes for the flagging pipeline."""


class OccurrenceFlaggingError(Exception):
    """Base exception for all flagging errors."""


class ConfigurationError(OccurrenceFlaggingError):
    """Raised when a CLI option or config value is invalid."""


class BoundaryLayerError(OccurrenceFlaggingError):
    """Raised when a boundary or reference layer is missing or unusable."""


class MissingColumnsError(OccurrenceFlaggingError):
    """Raised when an occurrence file lacks required columns."""

    def __init__(self, path: str, missing: list[str]):
        self.path = path
        self.missing = missing
        super().__init__(f"{path} is missing required columns: {', '.join(missing)}")


class TaxonProcessingError(OccurrenceFlaggingError):
    """Raised when one taxon's file cannot be flagged."""

    def __init__(self, taxon_name: str, cause: BaseException):
        self.taxon_name = taxon_name
        self.cause = cause
        super().__init__(f"Failed to flag {taxon_name}: {cause}")
