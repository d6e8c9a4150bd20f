import numpy as np
import pytest

from segoverlay.core.geometry import BoundingBox, Letterbox
from segoverlay.detection.base import Detection
from segoverlay.rendering.palette import color_for_class, label_for_class, load_labels
from segoverlay.rendering.renderer import (
    draw_detections,
    draw_segmentation_mask,
    format_label,
    label_position,
)


IDENTITY = Letterbox(scale=1.0, input_size=640)
RED = (255, 0, 0)


def blank(height=640, width=640):
    return np.zeros((height, width, 3), dtype=np.uint8)


def test_no_detections_draws_nothing():
    canvas = blank()
    draw_detections(canvas, [], IDENTITY)
    assert not canvas.any()


def test_ellipse_and_label_drawn_in_class_color():
    canvas = blank()
    det = Detection(box=BoundingBox(270, 270, 100, 100), score=0.9, class_id=0)

    draw_detections(canvas, [det], IDENTITY, labels=["object"], colors=["#ff0000"])

    # Left edge of the ellipse
    assert np.any(np.all(canvas[315:326, 266:275] == RED, axis=-1))
    # Center of the ellipse is untouched
    assert not canvas[320, 320].any()
    # Label tag sits just above the box
    assert np.any(np.all(canvas[245:270, 300:340] == RED, axis=-1))


def test_boxes_can_be_disabled():
    canvas = blank()
    det = Detection(box=BoundingBox(270, 270, 100, 100), score=0.9, class_id=0)
    draw_detections(canvas, [det], IDENTITY, draw_boxes=False)
    assert not canvas.any()


def test_mask_painted_only_above_threshold():
    canvas = blank()
    mask = np.full((160, 160), 0.1, dtype=np.float32)
    mask[:, :80] = 0.9
    det = Detection(box=BoundingBox(0, 0, 640, 640), score=0.9, class_id=0, mask=mask)

    draw_segmentation_mask(canvas, det, RED, IDENTITY)

    expected = np.floor(0.9 * 180) / 255 * 255
    assert abs(int(canvas[10, 10, 0]) - expected) <= 1
    assert canvas[10, 10, 1] == 0
    assert not canvas[10, 600].any()


def test_mask_at_display_threshold_is_not_painted():
    canvas = blank(64, 64)
    mask = np.full((16, 16), 0.6, dtype=np.float32)
    det = Detection(box=BoundingBox(0, 0, 64, 64), score=0.9, class_id=0, mask=mask)
    draw_segmentation_mask(canvas, det, RED, Letterbox(scale=1.0, input_size=64))
    assert not canvas.any()


def test_mask_restricted_to_box_footprint():
    canvas = blank()
    mask = np.full((160, 160), 0.95, dtype=np.float32)
    det = Detection(box=BoundingBox(100, 100, 50, 50), score=0.9, class_id=0, mask=mask)

    draw_segmentation_mask(canvas, det, RED, IDENTITY)

    assert canvas[120, 120, 0] > 0
    assert not canvas[99, 120].any()
    assert not canvas[120, 150].any()
    assert not canvas[400, 400].any()


def test_mask_box_clipped_to_image():
    canvas = blank(100, 100)
    mask = np.full((160, 160), 0.95, dtype=np.float32)
    det = Detection(box=BoundingBox(-50, 80, 200, 100), score=0.9, class_id=0, mask=mask)

    draw_segmentation_mask(canvas, det, RED, Letterbox(scale=6.4, input_size=640))

    assert canvas[90, 0, 0] > 0
    assert not canvas[50, 50].any()


def test_mask_maps_through_letterbox():
    # 320x160 image letterboxed into 640: scale 2, 160 px top padding
    letterbox = Letterbox.fit(320, 160, 640)
    mask = np.zeros((160, 160), dtype=np.float32)
    # Mask rows 40..79 cover input rows 160..319, i.e. image rows 0..79
    mask[40:80, :] = 0.99
    canvas = blank(160, 320)
    det = Detection(box=BoundingBox(0, 0, 320, 160), score=0.9, class_id=0, mask=mask)

    draw_segmentation_mask(canvas, det, RED, letterbox)

    assert canvas[10, 10, 0] > 0
    assert not canvas[120, 10].any()


def test_masks_skipped_when_disabled():
    canvas = blank()
    mask = np.full((160, 160), 0.95, dtype=np.float32)
    det = Detection(box=BoundingBox(0, 0, 100, 100), score=0.9, class_id=0, mask=mask)
    draw_detections(canvas, [det], IDENTITY, draw_masks=False, draw_boxes=False)
    assert not canvas.any()


def test_label_position_stays_on_canvas():
    assert label_position(320, 270, 100, 640) == (270, 265)
    # Too far left and above the top edge
    x, y = label_position(10, 2, 100, 640)
    assert x == 5
    assert y == 20
    # Too far right
    x, _ = label_position(635, 300, 100, 640)
    assert x == 640 - 100 - 5


def test_format_label():
    assert format_label("person", 0.876) == "person: 87.6%"


def test_palette_wraps_and_parses():
    colors = ["#ff0000", "#00FF00", "0000ff"]
    assert color_for_class(0, colors) == (255, 0, 0)
    assert color_for_class(1, colors) == (0, 255, 0)
    assert color_for_class(5, colors) == (0, 0, 255)
    assert color_for_class(0, ["bogus"]) == (0, 255, 0)


def test_label_lookup_falls_back_to_id():
    assert label_for_class(0, ["cat"]) == "cat"
    assert label_for_class(3, ["cat"]) == "3"


def test_load_labels(tmp_path):
    path = tmp_path / "labels.txt"
    path.write_text("cat\n\n dog \n", encoding="utf-8")
    assert load_labels(str(path)) == ["cat", "dog"]

    empty = tmp_path / "empty.txt"
    empty.write_text("\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_labels(str(empty))
