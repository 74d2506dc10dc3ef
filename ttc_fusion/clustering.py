import logging
import numpy as np

from .configs import SHRINK_FACTOR
from .projection import project_lidar_points

logger = logging.getLogger(__name__)


def shrink_roi(roi, shrink_factor=SHRINK_FACTOR):
    """Contract (x, y, w, h) symmetrically by shrink_factor around its center."""
    x, y, w, h = roi
    return (x + shrink_factor * w / 2.0, y + shrink_factor * h / 2.0,
            w * (1 - shrink_factor), h * (1 - shrink_factor))


def roi_contains(roi, uv):
    """
    Half-open rectangle test x <= u < x+w, y <= v < y+h.
    uv may be a single (u, v) or an (N, 2) array; returns bool or (N,) mask.
    """
    x, y, w, h = roi
    uv = np.asarray(uv, dtype=np.float64)
    u, v = uv[..., 0], uv[..., 1]
    return (u >= x) & (u < x + w) & (v >= y) & (v < y + h)


def _kpt_xy(kp):
    return kp.pt if hasattr(kp, "pt") else (kp[0], kp[1])


def keypoints_to_array(keypoints):
    if len(keypoints) == 0:
        return np.empty((0, 2))
    return np.array([_kpt_xy(kp) for kp in keypoints], dtype=np.float64)


def cluster_lidar_with_roi(bounding_boxes, lidar_points, calib, shrink_factor=SHRINK_FACTOR):
    """
    Assign each lidar point to the single box whose shrunk ROI encloses its
    projection. Points enclosed by zero or several boxes are dropped.
    Boxes are updated in place; returns the (N,) owner index (-1 = dropped).
    """
    if not 0.0 <= shrink_factor < 1.0:
        raise ValueError(f"shrink_factor must be in [0, 1), got {shrink_factor}")
    pts = np.asarray(lidar_points, dtype=np.float64)
    n = 0 if pts.size == 0 else pts.shape[0]
    owner = np.full(n, -1, dtype=int)
    if n == 0 or not bounding_boxes:
        return owner

    uv, _ = project_lidar_points(pts, calib)
    inside = np.stack([roi_contains(shrink_roi(bb.roi, shrink_factor), uv)
                       for bb in bounding_boxes])          # B x N
    n_enclosing = inside.sum(axis=0)
    unique = n_enclosing == 1
    owner[unique] = np.argmax(inside[:, unique], axis=0)

    for i, bb in enumerate(bounding_boxes):
        bb.add_lidar_points(pts[owner == i])

    logger.debug("lidar clustering: %d assigned, %d ambiguous, %d outside",
                 int(unique.sum()), int((n_enclosing > 1).sum()), int((n_enclosing == 0).sum()))
    return owner


def cluster_kpt_matches_with_roi(bounding_box, kpts_prev, kpts_curr, kpt_matches):
    """Attach every match whose current keypoint falls inside the (unshrunk) box ROI."""
    for match in kpt_matches:
        ckp = kpts_curr[match.trainIdx]
        if roi_contains(bounding_box.roi, _kpt_xy(ckp)):
            bounding_box.kpt_matches.append(match)
            bounding_box.keypoints.append(ckp)
    return bounding_box
