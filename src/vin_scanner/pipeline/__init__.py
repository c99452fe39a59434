"""
VIN Scanner - Pipeline Module
=============================

Frame-level orchestration of detection and validation.
"""

from .vin_pipeline import VINScanPipeline, ScanResult, TextReader

__all__ = ["VINScanPipeline", "ScanResult", "TextReader"]
