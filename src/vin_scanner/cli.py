#!/usr/bin/env python3
"""
VIN Scanner CLI - Command Line Interface
========================================

Usage:
    vin-scanner validate <text>                   Validate OCR text as a VIN
    vin-scanner clean <text>                      Print the cleaned VIN
    vin-scanner decode <vin>                      Decode VIN structure
    vin-scanner detect <tensor.npy> -W 1280 -H 960  Decode a saved detector output
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import numpy as np

from .config import LoggingConfig, get_config, setup_logging
from .core.exceptions import VINScannerError
from .core.normalizer import normalize
from .core.validator import ChecksumPolicy, VinValidator
from .core.vin_utils import decode_vin
from .detection.decoder import DetectionDecoder

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_ERROR = 2


def cmd_validate(args):
    """Validate a VIN string."""
    val = get_config().validation
    policy = ChecksumPolicy.LENIENT if args.lenient else val.checksum_policy
    validator = VinValidator(
        min_digits=val.min_digits,
        max_permutation_depth=val.max_permutation_depth,
        checksum_policy=policy,
    )
    result = validator.validate(args.text)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        status = "VALID" if result.is_valid else "INVALID"
        print(f"VIN: {result.vin or '-'} - {status}")
        print(f"  Format: {'OK' if result.format_valid else 'INVALID'}")
        print(f"  Checksum: {'OK' if result.checksum_valid else 'INVALID'}")
        if result.was_trimmed:
            print("  Trimmed: noise removed from start/end")
        if result.error_message:
            print(f"  Reason: {result.error_message}")

    return EXIT_OK if result.is_valid else EXIT_INVALID


def cmd_clean(args):
    """Print the cleaned VIN, or nothing if none can be extracted."""
    extraction = normalize(args.text)
    if extraction.vin is None:
        print(f"No VIN: {extraction.error_reason.value}", file=sys.stderr)
        return EXIT_INVALID
    print(extraction.vin)
    return EXIT_OK


def cmd_decode(args):
    """Decode a VIN string structure."""
    result = decode_vin(args.vin)

    if args.json:
        print(json.dumps(result, indent=2))
        return EXIT_INVALID if 'error' in result else EXIT_OK

    if 'error' in result:
        print(f"Error: {result['error']}")
        return EXIT_INVALID

    print(f"VIN: {result['vin']}")
    print(f"  WMI (Manufacturer): {result['wmi']} - {result['manufacturer']}, {result['country']} ({result['region']})")
    print(f"  VDS (Descriptor): {result['vds']}")
    print(f"  Check Digit: {result['check_digit']}")
    print(f"  Model Year: {result['model_year_display']}")
    print(f"  Plant Code: {result['plant_code']}")
    print(f"  Sequential: {result['sequential']}")
    return EXIT_OK


def cmd_detect(args):
    """Decode a detector output tensor saved with numpy.save."""
    tensor_path = Path(args.tensor)
    if not tensor_path.exists():
        print(f"Error: Tensor file not found: {tensor_path}", file=sys.stderr)
        return EXIT_ERROR

    det = get_config().detection
    decoder = DetectionDecoder(
        model_input_size=args.model_size or det.model_input_size,
        confidence_floor=det.confidence_floor,
        iou_threshold=det.iou_threshold,
        coordinates_normalized=det.coordinates_normalized,
    )

    try:
        tensor = np.load(tensor_path, allow_pickle=False)
        result = decoder.detect(tensor, args.width, args.height, args.conf, args.iou)
    except (ValueError, OSError) as e:
        logger.debug("Could not decode tensor file", exc_info=True)
        print(f"Error: Cannot decode {tensor_path}: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(f"Detected {len(result.boxes)} box(es) "
              f"(raw={result.raw_count}, max_conf={result.max_confidence:.3f}, "
              f"{result.processing_time_ms:.1f}ms)")
        for i, box in enumerate(result.boxes):
            print(f"  [{i}] conf={box.confidence:.3f} "
                  f"({box.left:.4f}, {box.top:.4f}, {box.right:.4f}, {box.bottom:.4f})")

    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='vin-scanner',
        description='VIN Scanner - validate VIN text and decode detector output',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vin-scanner validate "VIN: 1HGBH41JXMN109186"
  vin-scanner validate "1HGBH41J5MN109186" --lenient --json
  vin-scanner decode 1HGBH41JXMN109186
  vin-scanner detect output.npy --width 1280 --height 960
        """
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    parser.add_argument('--version', action='version', version='VIN Scanner 1.0.0')

    subparsers = parser.add_subparsers(dest='command', required=True)

    p = subparsers.add_parser('validate', help='Validate OCR text as a VIN')
    p.add_argument('text', help='Raw OCR text')
    p.add_argument('--lenient', action='store_true',
                   help='Accept format-valid VINs whose checksum fails')
    p.add_argument('--json', action='store_true', help='Output as JSON')
    p.set_defaults(func=cmd_validate)

    p = subparsers.add_parser('clean', help='Print the cleaned VIN')
    p.add_argument('text', help='Raw OCR text')
    p.set_defaults(func=cmd_clean)

    p = subparsers.add_parser('decode', help='Decode VIN structure')
    p.add_argument('vin', help='17-character VIN')
    p.add_argument('--json', action='store_true', help='Output as JSON')
    p.set_defaults(func=cmd_decode)

    p = subparsers.add_parser('detect', help='Decode a saved detector output tensor')
    p.add_argument('tensor', help='Path to .npy file with shape [1, A, B]')
    p.add_argument('-W', '--width', type=int, required=True, help='Image width fed to the model')
    p.add_argument('-H', '--height', type=int, required=True, help='Image height fed to the model')
    p.add_argument('--model-size', type=int, default=None, help='Model input size (default: config)')
    p.add_argument('--conf', type=float, default=None, help='Confidence threshold')
    p.add_argument('--iou', type=float, default=None, help='NMS IoU threshold')
    p.add_argument('--json', action='store_true', help='Output as JSON')
    p.set_defaults(func=cmd_detect)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_config = LoggingConfig()
    if args.verbose:
        log_config.level = 'DEBUG'
    elif log_config.level.upper() == 'INFO':
        log_config.level = 'WARNING'
    setup_logging(log_config)

    try:
        return args.func(args)
    except VINScannerError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == '__main__':
    sys.exit(main())
