"""
Exception hierarchy for the VIN scanner.

Only contract violations raise. Ordinary negative outcomes (no boxes,
no VIN in the text, bad checksum) are returned as values.
"""


class VINScannerError(Exception):
    """Base exception for VIN scanner errors."""
    pass


class ConfigurationError(VINScannerError):
    """Raised when the scanner is misconfigured."""
    pass


class TensorShapeError(ConfigurationError):
    """Raised when a detection tensor does not match the decoder's contract."""
    pass
