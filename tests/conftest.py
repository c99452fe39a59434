"""Shared fixtures for the VIN scanner test suite."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Make the src/ layout importable without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vin_scanner.config import reset_config  # noqa: E402


# Well-known ISO 3779 example VIN (check digit 'X')
VALID_VIN = "1HGBH41JXMN109186"


@pytest.fixture
def valid_vin():
    return VALID_VIN


@pytest.fixture(autouse=True)
def _clean_config(monkeypatch):
    """Isolate tests from VIN_* environment variables and the config singleton."""
    for key in [
        'VIN_MODEL_INPUT_SIZE', 'VIN_CONF_FLOOR', 'VIN_IOU_THRESHOLD',
        'VIN_COORDS_NORMALIZED', 'VIN_MIN_DIGITS', 'VIN_MAX_PERMUTATION_DEPTH',
        'VIN_CHECKSUM_POLICY', 'VIN_LOG_LEVEL', 'VIN_LOG_FILE',
    ]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


def make_tensor(candidates, properties=6, properties_first=False, padding=0):
    """
    Build a [1, N, P] (or [1, P, N]) detector output.

    Args:
        candidates: Rows of [cx, cy, w, h, obj, cls...] in normalized units
        properties: Properties-axis size; rows are zero-padded to it
        properties_first: Emit the [1, P, N] layout
        padding: Extra all-zero candidates appended
    """
    rows = np.zeros((len(candidates) + padding, properties), dtype=np.float32)
    for i, row in enumerate(candidates):
        rows[i, :len(row)] = row
    tensor = rows.T if properties_first else rows
    return tensor[np.newaxis, ...]
