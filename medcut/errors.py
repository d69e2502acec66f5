class QuantizerError(Exception):
    """Base class for everything the quantizer raises."""


class AllocationError(QuantizerError, MemoryError):
    """Working storage for colors, groups or the index map could not be reserved."""


class InvalidArgumentError(QuantizerError, ValueError):
    """Caller passed a malformed stride, buffer, width or empty input."""


class QuantizerStateError(QuantizerError, RuntimeError):
    """A quantizer was used after reduce() consumed it."""
