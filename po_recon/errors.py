class ReconError(ValueError):
    """Base class for errors that stop a single ingestion or reconciliation step."""


class UnsupportedFormatError(ReconError):
    pass


class ParseError(ReconError):
    pass


class HeaderNotFoundError(ReconError):
    pass


class ColumnResolutionError(ReconError):
    """Raised only when reconciliation is attempted without SKU and Price columns."""

    def __init__(self, message, missing=()):
        super().__init__(message)
        self.missing = tuple(missing)
