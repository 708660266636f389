class BloomFilterError(Exception):
    """Base class for filter errors"""


class ValidationError(BloomFilterError, ValueError):
    """Malformed or missing construction / deserialization input"""


class SizingError(BloomFilterError, ArithmeticError):
    """Degenerate inputs to the optimal sizing formula"""
