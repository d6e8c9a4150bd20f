import numpy as np
import pytest

from segoverlay.core.geometry import Letterbox
from segoverlay.detection.decoder import decode_detections, output_rows


def make_output(rows):
    """Build a (1, C, N) output from per-anchor rows."""
    return np.asarray(rows, dtype=np.float32).T[np.newaxis, ...]


IDENTITY = Letterbox(scale=1.0, pad_left=0, pad_top=0, input_size=640)


def test_output_rows_transposes():
    output = make_output([[1, 2, 3, 4, 0.5], [5, 6, 7, 8, 0.6]])
    rows = output_rows(output)
    assert rows.shape == (2, 5)
    np.testing.assert_allclose(rows[1], [5, 6, 7, 8, 0.6], rtol=1e-6)


def test_output_rows_accepts_missing_batch_axis():
    output = make_output([[1, 2, 3, 4, 0.5]])[0]
    assert output_rows(output).shape == (1, 5)


@pytest.mark.parametrize("shape", [(2, 5, 3), (5,), (1, 2, 5, 3), (1, 3, 10)])
def test_output_rows_rejects_bad_shapes(shape):
    with pytest.raises(ValueError):
        output_rows(np.zeros(shape, dtype=np.float32))


def test_single_anchor_maps_back_to_center():
    output = make_output([[320, 320, 100, 100, 0.9]])

    detections = decode_detections(output, 640, 640, IDENTITY, confidence_threshold=0.5)

    assert len(detections) == 1
    det = detections[0]
    assert det.box.center == pytest.approx((320, 320))
    assert det.box.width == pytest.approx(100)
    assert det.box.height == pytest.approx(100)
    assert det.score == pytest.approx(0.9)
    assert det.class_id == 0
    assert det.mask_coefficients is None


def test_threshold_is_inclusive():
    output = make_output(
        [
            [100, 100, 20, 20, 0.49],
            [200, 200, 20, 20, 0.5],
            [300, 300, 20, 20, 0.51],
        ]
    )

    detections = decode_detections(output, 640, 640, IDENTITY, confidence_threshold=0.5)

    scores = sorted(d.score for d in detections)
    assert scores == pytest.approx([0.5, 0.51])


def test_threshold_above_every_score_yields_nothing():
    output = make_output([[100, 100, 20, 20, 0.3], [200, 200, 20, 20, 0.7]])
    assert decode_detections(output, 640, 640, IDENTITY, confidence_threshold=0.9) == []


def test_inverse_letterbox_applied():
    # 1280x640 image -> scale 0.5, 160 px of padding on top and bottom
    letterbox = Letterbox.fit(1280, 640, 640)
    output = make_output([[320, 320, 100, 50, 0.8]])

    det = decode_detections(output, 1280, 640, letterbox)[0]

    assert det.box.center == pytest.approx((640, 320))
    assert det.box.width == pytest.approx(200)
    assert det.box.height == pytest.approx(100)
    assert det.box.x == pytest.approx((270 - 0) / 0.5)
    assert det.box.y == pytest.approx((295 - 160) / 0.5)


def test_multi_class_takes_best_score():
    output = make_output([[50, 50, 10, 10, 0.2, 0.7, 0.6]])

    det = decode_detections(output, 640, 640, IDENTITY, num_classes=3)[0]

    assert det.class_id == 1
    assert det.score == pytest.approx(0.7)


def test_mask_coefficients_are_carried_through():
    coeffs = [0.25, -1.5, 3.0]
    output = make_output([[50, 50, 10, 10, 0.9, *coeffs]])

    det = decode_detections(output, 640, 640, IDENTITY, num_classes=1)[0]

    np.testing.assert_allclose(det.mask_coefficients, coeffs)


def test_zero_classes_does_not_crash():
    output = make_output([[50, 50, 10, 10, 0.9]])
    assert decode_detections(output, 640, 640, IDENTITY, num_classes=0) == []


def test_missing_score_columns_does_not_crash():
    output = make_output([[50, 50, 10, 10]])
    assert decode_detections(output, 640, 640, IDENTITY, num_classes=1) == []


def test_fewer_score_columns_than_classes_yields_nothing():
    output = make_output([[50, 50, 10, 10, 0.9]])
    assert decode_detections(output, 640, 640, IDENTITY, num_classes=3) == []


def test_negative_extent_anchor_is_rejected():
    output = make_output([[50, 50, -10, 10, 0.9], [80, 80, 10, 10, 0.9]])

    detections = decode_detections(output, 640, 640, IDENTITY)

    assert len(detections) == 1
    assert detections[0].box.width >= 0 and detections[0].box.height >= 0
