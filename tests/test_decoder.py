"""
Tests for detection tensor decoding
===================================

Tensors are built with ``make_tensor`` from conftest: rows of
[cx, cy, w, h, obj, cls...] in normalized model coordinates.

Run with: pytest tests/test_decoder.py -v
"""

import warnings

import numpy as np
import pytest

from conftest import make_tensor
from vin_scanner.core.exceptions import ConfigurationError, TensorShapeError, VINScannerError
from vin_scanner.detection.decoder import DetectionDecoder, detect_layout


# Box centred in a 1280x960 frame: (0.375, 0.4167) - (0.625, 0.5833)
CENTER_CANDIDATE = [0.5, 0.5, 0.25, 0.125, 0.9, 1.0]

# Lies entirely inside the top letterbox padding (model y 16..48 < 80)
PADDING_CANDIDATE = [0.5, 0.05, 0.25, 0.05, 0.95, 1.0]


@pytest.fixture
def decoder():
    return DetectionDecoder(model_input_size=640)


# =============================================================================
# LAYOUT DETECTION
# =============================================================================

class TestDetectLayout:
    """Tests for properties/candidates axis detection."""

    def test_properties_last(self):
        layout = detect_layout((1, 8400, 6))
        assert layout.properties_first is False
        assert layout.properties_count == 6
        assert layout.candidates_count == 8400

    def test_properties_first(self):
        layout = detect_layout((1, 6, 8400))
        assert layout.properties_first is True
        assert layout.properties_count == 6

    def test_coco_layout(self):
        assert detect_layout((1, 84, 8400)).properties_count == 84
        assert detect_layout((1, 25200, 85)).properties_count == 85

    def test_both_axes_known_prefers_first(self):
        layout = detect_layout((1, 5, 6))
        assert layout.properties_first is True
        assert layout.properties_count == 5

    def test_unknown_count_uses_smaller_axis(self):
        layout = detect_layout((1, 7, 100))
        assert layout.properties_first is True
        assert layout.properties_count == 7

        layout = detect_layout((1, 100, 7))
        assert layout.properties_first is False
        assert layout.properties_count == 7

    def test_wrong_rank(self):
        with pytest.raises(TensorShapeError):
            detect_layout((8400, 6))

    def test_too_few_properties(self):
        with pytest.raises(TensorShapeError):
            detect_layout((1, 3, 100))

    def test_batch_size_must_be_one(self):
        with pytest.raises(TensorShapeError):
            detect_layout((2, 6, 8400))
        with pytest.raises(TensorShapeError):
            detect_layout((0, 6, 8400))

    def test_shape_error_is_scanner_error(self):
        with pytest.raises(VINScannerError):
            detect_layout((1, 2, 3, 4))


# =============================================================================
# DECODING
# =============================================================================

class TestDecode:
    """Tests for candidate decoding and unletterboxing."""

    @pytest.mark.parametrize("properties_first", [False, True])
    def test_center_candidate(self, decoder, properties_first):
        tensor = make_tensor([CENTER_CANDIDATE], properties_first=properties_first, padding=99)
        boxes = decoder.decode(tensor, 1280, 960)

        assert len(boxes) == 1
        b = boxes[0]
        assert b.left == pytest.approx(0.375)
        assert b.top == pytest.approx(0.41667, abs=1e-4)
        assert b.right == pytest.approx(0.625)
        assert b.bottom == pytest.approx(0.58333, abs=1e-4)
        assert b.confidence == pytest.approx(0.9)

    def test_confidence_is_objectness_times_best_class(self, decoder):
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.1, 0.8, 0.3, 0.9, 0.1]], properties=8, padding=99)
        boxes = decoder.decode(tensor, 640, 640)
        assert boxes[0].confidence == pytest.approx(0.72)

    def test_objectness_only(self, decoder):
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.1, 0.6]], properties=5, padding=99)
        boxes = decoder.decode(tensor, 640, 640)
        assert boxes[0].confidence == pytest.approx(0.6)

    def test_geometry_only_has_full_confidence(self, decoder):
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.1]], properties=4, properties_first=True, padding=9)
        boxes = decoder.decode(tensor, 640, 640)
        # Zero padding rows are degenerate and dropped
        assert len(boxes) == 1
        assert boxes[0].confidence == 1.0

    def test_fallback_layout_decodes(self, decoder):
        tensor = make_tensor([CENTER_CANDIDATE], properties=7, properties_first=True, padding=99)
        assert np.asarray(tensor).shape == (1, 7, 100)
        assert len(decoder.decode(tensor, 1280, 960)) == 1

    def test_square_frame_has_no_padding(self, decoder):
        tensor = make_tensor([[0.5, 0.5, 0.5, 0.5, 1.0, 1.0]], padding=99)
        b = decoder.decode(tensor, 640, 640)[0]
        assert (b.left, b.top, b.right, b.bottom) == pytest.approx((0.25, 0.25, 0.75, 0.75))

    def test_pixel_coordinates(self):
        decoder = DetectionDecoder(model_input_size=640, coordinates_normalized=False)
        tensor = make_tensor([[320, 320, 160, 80, 0.9, 1.0]], padding=99)
        b = decoder.decode(tensor, 1280, 960)[0]
        assert b.left == pytest.approx(0.375)
        assert b.right == pytest.approx(0.625)

    def test_box_in_padding_discarded(self, decoder):
        tensor = make_tensor([PADDING_CANDIDATE, CENTER_CANDIDATE], padding=98)
        boxes = decoder.decode(tensor, 1280, 960)
        assert len(boxes) == 1
        assert boxes[0].confidence == pytest.approx(0.9)

    def test_boxes_are_clamped(self, decoder):
        tensor = make_tensor([[0.05, 0.5, 0.3, 0.2, 0.9, 1.0]], padding=99)
        b = decoder.decode(tensor, 640, 640)[0]
        assert b.left == 0.0
        assert 0.0 <= b.right <= 1.0

    def test_accepts_nested_lists(self, decoder):
        tensor = make_tensor([CENTER_CANDIDATE], padding=99).tolist()
        assert len(decoder.decode(tensor, 1280, 960)) == 1

    def test_empty_candidates(self, decoder):
        assert decoder.decode(np.zeros((1, 6, 0)), 1280, 960) == []

    def test_batched_tensor_rejected(self, decoder):
        with pytest.raises(TensorShapeError):
            decoder.decode(np.zeros((2, 6, 10)), 640, 640)

    def test_all_nan_confidences(self, decoder):
        tensor = np.full((1, 100, 6), np.nan, dtype=np.float32)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            result = decoder.decode_with_stats(tensor, 640, 640)
        assert result.boxes == []
        assert result.max_confidence == 0.0

    def test_some_nan_confidences(self, decoder):
        tensor = make_tensor([CENTER_CANDIDATE, [0.2, 0.2, 0.1, 0.1, np.nan, 1.0]], padding=98)
        result = decoder.decode_with_stats(tensor, 1280, 960)
        assert len(result.boxes) == 1
        assert result.max_confidence == pytest.approx(0.9)

    def test_rank_error(self, decoder):
        with pytest.raises(TensorShapeError):
            decoder.decode(np.zeros((100, 6)), 1280, 960)


# =============================================================================
# THRESHOLDS
# =============================================================================

class TestThresholds:
    """Tests for the confidence floor and requested thresholds."""

    def test_floor_applied_to_low_request(self, decoder):
        assert decoder.effective_threshold(0.1) == 0.25
        assert decoder.effective_threshold(0.6) == 0.6
        assert decoder.effective_threshold(None) == 0.25

    def test_below_floor_rejected(self, decoder):
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.1, 0.2, 1.0]], padding=99)
        assert decoder.decode(tensor, 640, 640, confidence_threshold=0.05) == []

    def test_requested_threshold_above_floor(self, decoder):
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.1, 0.4, 1.0]], padding=99)
        assert len(decoder.decode(tensor, 640, 640)) == 1
        assert decoder.decode(tensor, 640, 640, confidence_threshold=0.5) == []

    def test_no_boxes_logs_max_confidence(self, decoder, caplog):
        tensor = make_tensor([[0.5, 0.5, 0.2, 0.1, 0.2, 1.0]], padding=99)
        with caplog.at_level('WARNING'):
            result = decoder.decode_with_stats(tensor, 640, 640)
        assert result.boxes == []
        assert result.max_confidence == pytest.approx(0.2)
        assert "No boxes detected" in caplog.text

    @pytest.mark.parametrize("kwargs", [
        {'model_input_size': 0},
        {'confidence_floor': 1.5},
        {'iou_threshold': -0.1},
    ])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ConfigurationError):
            DetectionDecoder(**kwargs)


# =============================================================================
# DETECT (DECODE + NMS)
# =============================================================================

class TestDetect:
    """Tests for the full decode + NMS step."""

    def test_duplicates_suppressed(self, decoder):
        tensor = make_tensor([
            [0.51, 0.5, 0.25, 0.125, 0.8, 1.0],
            CENTER_CANDIDATE,
            [0.2, 0.2, 0.1, 0.1, 0.7, 1.0],
        ], padding=97)
        result = decoder.detect(tensor, 1280, 960)

        assert result.raw_count == 3
        assert [round(b.confidence, 2) for b in result.boxes] == [0.9, 0.7]
        assert result.layout.properties_count == 6
        assert result.processing_time_ms >= 0.0

    def test_iou_override(self, decoder):
        tensor = make_tensor([
            [0.51, 0.5, 0.25, 0.125, 0.8, 1.0],
            CENTER_CANDIDATE,
        ], padding=98)
        result = decoder.detect(tensor, 1280, 960, iou_threshold=1.0)
        assert len(result.boxes) == 2

    def test_to_dict(self, decoder):
        tensor = make_tensor([CENTER_CANDIDATE], padding=99)
        data = decoder.detect(tensor, 1280, 960).to_dict()
        assert len(data['boxes']) == 1
        assert data['layout'] == {
            'properties_count': 6, 'candidates_count': 100, 'properties_first': False,
        }
