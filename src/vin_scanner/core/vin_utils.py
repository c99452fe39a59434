"""
VIN Utilities - Single Source of Truth
======================================

VIN constants, ISO 3779 checksum math, the bounded search over
optically ambiguous characters, and VIN structure decoding.

Every table here is a read-only module constant, so all functions are
safe to call concurrently without locking.
"""

import logging
from collections import deque
from typing import Any, Dict, FrozenSet, Optional, Tuple

logger = logging.getLogger(__name__)


# =============================================================================
# VIN CONSTANTS
# =============================================================================

class VINConstants:
    """Immutable VIN constants per ISO 3779 / NHTSA."""

    LENGTH: int = 17

    # Valid characters (I, O, Q excluded to avoid confusion with 1, 0)
    VALID_CHARS: FrozenSet[str] = frozenset("0123456789ABCDEFGHJKLMNPRSTUVWXYZ")
    INVALID_CHARS: FrozenSet[str] = frozenset("IOQ")

    # 0-based index of the check digit (position 9)
    CHECK_DIGIT_INDEX: int = 8

    # Checksum weights by position (NHTSA standard)
    CHECKSUM_WEIGHTS: Tuple[int, ...] = (8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2)

    # Character to value mapping for checksum (ISO 3779)
    CHAR_VALUES: Dict[str, int] = {
        'A': 1, 'B': 2, 'C': 3, 'D': 4, 'E': 5, 'F': 6, 'G': 7, 'H': 8,
        'J': 1, 'K': 2, 'L': 3, 'M': 4, 'N': 5, 'P': 7, 'R': 9,
        'S': 2, 'T': 3, 'U': 4, 'V': 5, 'W': 6, 'X': 7, 'Y': 8, 'Z': 9,
        '0': 0, '1': 1, '2': 2, '3': 3, '4': 4, '5': 5, '6': 6, '7': 7, '8': 8, '9': 9
    }

    # Characters OCR confuses on stamped plates; symmetric pairs
    AMBIGUOUS_CHARS: Dict[str, str] = {
        'S': '5', '5': 'S',
        'Z': '2', '2': 'Z',
        'B': '8', '8': 'B',
        'A': '4', '4': 'A',
        'G': '6', '6': 'G',
    }


VIN_LENGTH = VINConstants.LENGTH
VIN_VALID_CHARS = VINConstants.VALID_CHARS
VIN_INVALID_CHARS = VINConstants.INVALID_CHARS

# Depth of the ambiguous-character search: one substitution at most
DEFAULT_MAX_PERMUTATION_DEPTH = 1


# =============================================================================
# CHECKSUM
# =============================================================================

def calculate_check_digit(vin: str) -> Optional[str]:
    """
    Calculate the expected check digit for a VIN.

    The check digit (position 9) is calculated by:
    1. Assigning numeric values to each character
    2. Multiplying by position weights
    3. Summing and taking mod 11
    4. Result 10 becomes 'X'

    Args:
        vin: 17-character VIN (check digit position will be ignored)

    Returns:
        Expected check digit ('0'-'9' or 'X'), or None if the VIN has the
        wrong length or a character outside the transliteration table
    """
    if len(vin) != VIN_LENGTH:
        return None

    total = 0
    for i, char in enumerate(vin):
        if i == VINConstants.CHECK_DIGIT_INDEX:
            continue
        value = VINConstants.CHAR_VALUES.get(char)
        if value is None:
            logger.debug(f"Invalid character '{char}' at position {i + 1} for checksum")
            return None
        total += value * VINConstants.CHECKSUM_WEIGHTS[i]

    remainder = total % 11
    return 'X' if remainder == 10 else str(remainder)


def validate_checksum(vin: str) -> bool:
    """
    Validate VIN checksum at position 9.

    Case-sensitive: callers pass the uppercase string produced by the
    normalizer.

    Args:
        vin: 17-character VIN to validate

    Returns:
        True if checksum is valid, False otherwise
    """
    expected = calculate_check_digit(vin)
    if expected is None:
        return False

    found = vin[VINConstants.CHECK_DIGIT_INDEX]
    if found != expected:
        logger.debug(f"Checksum mismatch for '{vin}': expected '{expected}', got '{found}'")
        return False
    return True


def find_checksum_variant(
    vin: str,
    max_changes: int = DEFAULT_MAX_PERMUTATION_DEPTH,
) -> Optional[str]:
    """
    Breadth-first search for a variant of ``vin`` that passes the checksum.

    Each step swaps a single position through ``AMBIGUOUS_CHARS``. The
    original string is depth 0 and is always tried first; no variant is
    more than ``max_changes`` substitutions away from it.

    Args:
        vin: 17-character VIN candidate
        max_changes: Maximum number of substitutions (search depth)

    Returns:
        The first variant (in BFS order) with a valid checksum, or None
    """
    if max_changes < 0:
        raise ValueError(f"max_changes must be >= 0, got {max_changes}")

    seen = {vin}
    queue = deque([(vin, 0)])

    while queue:
        current, changes = queue.popleft()

        if validate_checksum(current):
            if changes:
                logger.info(f"Checksum valid for ambiguous variant '{current}' of '{vin}'")
            return current

        if changes >= max_changes:
            continue

        for i, char in enumerate(current):
            swapped = VINConstants.AMBIGUOUS_CHARS.get(char)
            if swapped is None:
                continue
            candidate = current[:i] + swapped + current[i + 1:]
            if candidate not in seen:
                seen.add(candidate)
                queue.append((candidate, changes + 1))

    return None


def validate_checksum_with_permutations(
    vin: str,
    max_changes: int = DEFAULT_MAX_PERMUTATION_DEPTH,
) -> bool:
    """True if ``vin`` or an ambiguous-character variant of it passes the checksum."""
    return find_checksum_variant(vin, max_changes) is not None


# =============================================================================
# VIN STRUCTURE DECODING
# =============================================================================

# Digit codes 1-9 are used for 2001-2009; letters cycle every 30 years.
# The modern interpretation (2010+) is reported for letters.
MODEL_YEAR_CODES_MODERN: Dict[str, int] = {
    '1': 2001, '2': 2002, '3': 2003, '4': 2004,
    '5': 2005, '6': 2006, '7': 2007, '8': 2008, '9': 2009,
    'A': 2010, 'B': 2011, 'C': 2012, 'D': 2013, 'E': 2014,
    'F': 2015, 'G': 2016, 'H': 2017, 'J': 2018, 'K': 2019,
    'L': 2020, 'M': 2021, 'N': 2022, 'P': 2023, 'R': 2024,
    'S': 2025, 'T': 2026, 'V': 2027, 'W': 2028, 'X': 2029,
    'Y': 2030,
}

# Region by first WMI character
_WMI_REGIONS: Tuple[Tuple[str, str], ...] = (
    ('12345', 'North America'),
    ('67', 'Oceania'),
    ('89', 'South America'),
    ('ABCDEFGH', 'Africa'),
    ('JKLMNPR', 'Asia'),
    ('STUVWXYZ', 'Europe'),
)


# Manufacturer and country for common WMIs
WMI_MANUFACTURERS: Dict[str, Tuple[str, str]] = {
    'SAL': ('Land Rover', 'United Kingdom'),
    'WVW': ('Volkswagen', 'Germany'),
    'WVG': ('Volkswagen', 'Germany'),
    'WBA': ('BMW', 'Germany'),
    'WDB': ('Mercedes-Benz', 'Germany'),
    'WDD': ('Mercedes-Benz', 'Germany'),
    'WF0': ('Ford', 'Germany'),
    'WMW': ('MINI', 'Germany'),
    'WP0': ('Porsche', 'Germany'),
    'WUA': ('Audi', 'Germany'),
    '1G1': ('Chevrolet', 'United States'),
    '1GC': ('Chevrolet', 'United States'),
    '1GT': ('GMC', 'United States'),
    '1G6': ('Cadillac', 'United States'),
    '1FA': ('Ford', 'United States'),
    '1FM': ('Ford', 'United States'),
    '1FT': ('Ford', 'United States'),
    '1HG': ('Honda', 'United States'),
    '1J4': ('Jeep', 'United States'),
    '1N4': ('Nissan', 'United States'),
    '4T1': ('Toyota', 'United States'),
    '5FN': ('Honda', 'United States'),
    '5NP': ('Hyundai', 'United States'),
    '2G1': ('Chevrolet', 'Canada'),
    '2HG': ('Honda', 'Canada'),
    '2HM': ('Hyundai', 'Canada'),
    '2T1': ('Toyota', 'Canada'),
    '3FA': ('Ford', 'Mexico'),
    '3G1': ('Chevrolet', 'Mexico'),
    '3VW': ('Volkswagen', 'Mexico'),
    'JN1': ('Nissan', 'Japan'),
    'JT2': ('Toyota', 'Japan'),
    'JTD': ('Toyota', 'Japan'),
    'JTE': ('Toyota', 'Japan'),
    'JTH': ('Lexus', 'Japan'),
    'KM8': ('Hyundai', 'South Korea'),
    'KNA': ('Kia', 'South Korea'),
    'KND': ('Kia', 'South Korea'),
    'VF1': ('Renault', 'France'),
    'VF3': ('Peugeot', 'France'),
    'YV1': ('Volvo', 'Sweden'),
    'ZFA': ('Fiat', 'Italy'),
    'ZFF': ('Ferrari', 'Italy'),
}


def _region_for(wmi: str) -> str:
    first = wmi[:1]
    for chars, region in _WMI_REGIONS:
        if first and first in chars:
            return region
    return 'Unknown'


def decode_vin(vin: str) -> Dict[str, Any]:
    """
    Decode VIN structure into its component parts.

    VIN Structure (ISO 3779):
    - Position 1-3: WMI (World Manufacturer Identifier)
    - Position 4-9: VDS (Vehicle Descriptor Section, incl. check digit)
    - Position 9: Check digit
    - Position 10: Model year
    - Position 11: Plant code
    - Position 12-17: Sequential number

    Args:
        vin: VIN string to decode

    Returns:
        Dict with decoded VIN components, or {'error': ...} on bad length
    """
    vin = vin.upper().strip()

    if len(vin) != VIN_LENGTH:
        return {'error': f'Invalid VIN length: {len(vin)} (expected {VIN_LENGTH})'}

    year_code = vin[9]
    model_year = MODEL_YEAR_CODES_MODERN.get(year_code)

    if model_year is None:
        model_year_display = f'Unknown ({year_code})'
    elif year_code.isalpha():
        model_year_display = f"{model_year} (or {model_year - 30})"
    else:
        model_year_display = str(model_year)

    manufacturer, country = WMI_MANUFACTURERS.get(vin[0:3], ('Unknown', 'Unknown'))

    return {
        'vin': vin,
        'wmi': vin[0:3],
        'region': _region_for(vin[0:3]),
        'manufacturer': manufacturer,
        'country': country,
        'vds': vin[3:9],
        'check_digit': vin[8],
        'model_year_code': year_code,
        'model_year': model_year,
        'model_year_display': model_year_display,
        'plant_code': vin[10],
        'sequential': vin[11:17],
        'vis': vin[9:17],
    }
