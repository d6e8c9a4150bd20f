import numpy as np
import pytest

from segoverlay.core.geometry import BoundingBox
from segoverlay.detection.base import Detection
from segoverlay.detection.masks import (
    PrototypeLayout,
    Prototypes,
    decode_mask,
    decode_masks,
    fit_coefficients,
)


def make_protos(channels=32, height=8, width=8, seed=0):
    rng = np.random.default_rng(seed)
    return rng.normal(size=(1, channels, height, width)).astype(np.float32)


def det_with(coefficients):
    return Detection(
        box=BoundingBox(0, 0, 10, 10), score=0.9, class_id=0, mask_coefficients=coefficients
    )


def test_channels_first_layout_is_kept():
    raw = make_protos()
    protos = Prototypes.from_array(raw)

    assert protos.source_layout is PrototypeLayout.CHANNELS_FIRST
    assert protos.data.shape == (32, 8, 8)
    np.testing.assert_array_equal(protos.data, raw[0])


def test_channels_last_layout_is_transposed():
    raw = make_protos(height=160, width=160)
    channels_last = np.transpose(raw, (0, 2, 3, 1))

    protos = Prototypes.from_array(channels_last)

    assert protos.source_layout is PrototypeLayout.CHANNELS_LAST
    assert (protos.channels, protos.height, protos.width) == (32, 160, 160)
    np.testing.assert_array_equal(protos.data, raw[0])


def test_layout_detection_without_expected_channel_match():
    assert PrototypeLayout.detect((160, 160, 16), channels=32) is PrototypeLayout.CHANNELS_LAST
    assert PrototypeLayout.detect((16, 160, 160), channels=32) is PrototypeLayout.CHANNELS_FIRST


def test_prototypes_reject_bad_rank():
    with pytest.raises(ValueError):
        Prototypes.from_array(np.zeros((32, 160), dtype=np.float32))
    with pytest.raises(ValueError):
        Prototypes.from_array(np.zeros((2, 32, 8, 8), dtype=np.float32))


def test_fit_coefficients_pads_and_truncates():
    np.testing.assert_array_equal(fit_coefficients([1.0, 2.0], 4), [1.0, 2.0, 0.0, 0.0])
    np.testing.assert_array_equal(fit_coefficients(np.arange(6), 3), [0, 1, 2])
    with pytest.raises(ValueError):
        fit_coefficients(np.zeros((2, 2)), 4)


def test_decode_mask_is_weighted_sum_through_sigmoid():
    raw = np.zeros((1, 2, 2, 2), dtype=np.float32)
    raw[0, 0] = [[1.0, -1.0], [0.0, 2.0]]
    raw[0, 1] = [[3.0, 3.0], [3.0, 3.0]]
    protos = Prototypes.from_array(raw, channels=2)

    mask = decode_mask([2.0, -1.0], protos)

    logits = 2.0 * raw[0, 0] - 1.0 * raw[0, 1]
    np.testing.assert_allclose(mask, 1 / (1 + np.exp(-logits)), rtol=1e-5)
    assert mask.dtype == np.float32


def test_short_coefficients_are_zero_padded():
    raw = np.zeros((1, 2, 3, 3), dtype=np.float32)
    raw[0, 0] = 2.0
    raw[0, 1] = 100.0
    protos = Prototypes.from_array(raw, channels=2)

    mask = decode_mask([1.0], protos)

    np.testing.assert_allclose(mask, 1 / (1 + np.exp(-2.0)), rtol=1e-5)


def test_decoding_is_deterministic():
    protos = Prototypes.from_array(make_protos(seed=3))
    coeffs = np.random.default_rng(4).normal(size=32).astype(np.float32)

    first = decode_mask(coeffs, protos)
    second = decode_mask(coeffs.copy(), Prototypes.from_array(make_protos(seed=3)))

    np.testing.assert_array_equal(first, second)


def test_decode_masks_fills_mask_field():
    protos = Prototypes.from_array(make_protos(height=16, width=12))
    dets = [det_with(np.ones(32, dtype=np.float32)), det_with(None)]

    decode_masks(dets, protos)

    assert dets[0].mask.shape == (16, 12)
    assert np.all((dets[0].mask >= 0) & (dets[0].mask <= 1))
    assert dets[1].mask is None


def test_malformed_coefficients_do_not_abort_batch(capsys):
    protos = Prototypes.from_array(make_protos())
    dets = [
        det_with(["not", "numbers"]),
        det_with(np.zeros((4, 8), dtype=np.float32)),
        det_with(np.zeros(32, dtype=np.float32)),
    ]

    decode_masks(dets, protos)

    assert dets[0].mask is None
    assert dets[1].mask is None
    np.testing.assert_allclose(dets[2].mask, 0.5)
    err = capsys.readouterr().err
    assert "Error decoding mask for detection 0" in err
    assert "Error decoding mask for detection 1" in err


def test_empty_coefficients_are_skipped():
    protos = Prototypes.from_array(make_protos())
    dets = [det_with(np.zeros(0, dtype=np.float32))]
    decode_masks(dets, protos)
    assert dets[0].mask is None
