class LexisError(Exception):
    """Base class for analysis failures."""


class ResourceUnavailableError(LexisError):
    """A model or dictionary required by the current run is missing."""

    def __init__(self, resource: str, message: str = ""):
        self.resource = resource
        super().__init__(message or f"{resource} is required but not available")


class AnalysisCancelled(LexisError):
    """The run was cancelled cooperatively; it produced no result."""

    def __init__(self, message: str = "Analysis cancelled"):
        super().__init__(message)
