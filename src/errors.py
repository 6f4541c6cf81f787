class ExtractionError(Exception):
    """Base class for fatal extraction failures."""


class SourceUnreadableError(ExtractionError):
    """The log file could not be opened or measured."""


class OutputUnwritableError(ExtractionError):
    """The output directory or output file could not be created."""
