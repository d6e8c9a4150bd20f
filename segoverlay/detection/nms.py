"""Greedy non-maximum suppression."""

from typing import Dict, List

from ..core.geometry import iou
from .base import Detection


DEFAULT_IOU_THRESHOLD = 0.45


def _greedy_suppress(ordered: List[Detection], iou_threshold: float) -> List[Detection]:
    suppressed = [False] * len(ordered)
    selected = []
    for i, current in enumerate(ordered):
        if suppressed[i]:
            continue
        selected.append(current)
        for j in range(i + 1, len(ordered)):
            if not suppressed[j] and iou(current.box, ordered[j].box) > iou_threshold:
                suppressed[j] = True
    return selected


def non_max_suppression(
    detections: List[Detection],
    iou_threshold: float = DEFAULT_IOU_THRESHOLD,
    class_aware: bool = False,
) -> List[Detection]:
    """Drop detections that overlap a higher-scoring one.

    Suppression is class-agnostic unless ``class_aware`` is set, in which
    case the same greedy pass runs independently for each class.

    Args:
        detections: Candidate detections in any order.
        iou_threshold: Overlap above which the lower-scoring box is dropped.
        class_aware: Only suppress boxes that share a class id.

    Returns:
        Surviving detections sorted by descending score. Equal scores keep
        their input order.
    """
    if not detections:
        return []

    # sorted() is stable, so ties resolve to input order
    ordered = sorted(detections, key=lambda d: -d.score)

    if not class_aware:
        selected = _greedy_suppress(ordered, iou_threshold)
    else:
        by_class: Dict[int, List[Detection]] = {}
        for det in ordered:
            by_class.setdefault(det.class_id, []).append(det)
        kept = set()
        for group in by_class.values():
            kept.update(id(d) for d in _greedy_suppress(group, iou_threshold))
        selected = [d for d in ordered if id(d) in kept]

    print(f"NMS: {len(detections)} -> {len(selected)} detections")
    return selected
