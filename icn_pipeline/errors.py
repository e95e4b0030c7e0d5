"""Domain errors and failure typing."""


class IcnPipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class DataFormatError(IcnPipelineError):
    """Raised when the ICN export does not have the expected shape."""

    error_code = "DATA_FORMAT_ERROR"


class GeocodingError(IcnPipelineError):
    """Raised by the geocoding client for non-OK API responses."""

    error_code = "GEOCODING_ERROR"
