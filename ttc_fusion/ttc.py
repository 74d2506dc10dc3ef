import logging
import numpy as np

from .clustering import keypoints_to_array
from .configs import check_slot_params, Y_SLOT_WIDTH, RANK_DIVISOR, DEDUP_SLOT_MINIMA, MIN_KPT_DIST

logger = logging.getLogger(__name__)


def lidar_slot_minima(lidar_points, y_slot_width=Y_SLOT_WIDTH):
    """
    Closest forward distance per lateral slot floor(y / y_slot_width).
    Returns (slot_keys, min_x) sorted by slot key.
    """
    check_slot_params(y_slot_width)
    pts = np.asarray(lidar_points, dtype=np.float64)
    if pts.size == 0:
        return np.empty((0,), dtype=int), np.empty((0,))
    slots = np.floor(pts[:, 1] / y_slot_width).astype(int)
    keys, inv = np.unique(slots, return_inverse=True)
    min_x = np.full(len(keys), np.inf)
    np.minimum.at(min_x, inv.reshape(-1), pts[:, 0])
    return keys, min_x


def robust_closest_distance(lidar_points, y_slot_width=Y_SLOT_WIDTH,
                            rank_divisor=RANK_DIVISOR, deduplicate=DEDUP_SLOT_MINIMA):
    """
    Robust stand-in for min(x): sort the per-slot minima (unique values when
    deduplicate is set) and take the one at index count // rank_divisor,
    so a few spurious near returns are skipped. NaN for an empty cloud.
    """
    check_slot_params(y_slot_width, rank_divisor)
    _, min_x = lidar_slot_minima(lidar_points, y_slot_width)
    if min_x.size == 0:
        return np.nan
    ranked = np.unique(min_x) if deduplicate else np.sort(min_x)
    idx = len(ranked) // rank_divisor
    logger.debug("lidar slot minima %s selected=%.3f @%d",
                 np.array2string(ranked, precision=2), ranked[idx], idx)
    return float(ranked[idx])


def compute_ttc_lidar(lidar_points_prev, lidar_points_curr, frame_rate,
                      y_slot_width=Y_SLOT_WIDTH, rank_divisor=RANK_DIVISOR,
                      deduplicate=DEDUP_SLOT_MINIMA):
    """
    Constant-velocity TTC from the closest distance in two lidar clouds:
        TTC = d_curr * dT / (d_prev - d_curr)
    inf when the distance did not change, negative when the object recedes,
    NaN when either cloud is empty.
    """
    if frame_rate <= 0:
        raise ValueError(f"frame_rate must be positive, got {frame_rate}")
    dT = 1.0 / frame_rate
    d_prev = robust_closest_distance(lidar_points_prev, y_slot_width, rank_divisor, deduplicate)
    d_curr = robust_closest_distance(lidar_points_curr, y_slot_width, rank_divisor, deduplicate)
    if not (np.isfinite(d_prev) and np.isfinite(d_curr)):
        return np.nan
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(d_curr) * dT / np.float64(d_prev - d_curr))


def distance_ratios(kpts_prev, kpts_curr, kpt_matches, min_dist=MIN_KPT_DIST):
    """
    dist_curr / dist_prev for every unordered pair of matches, keeping pairs
    with dist_prev > eps and dist_curr >= min_dist.
    """
    if len(kpt_matches) < 2:
        return np.empty((0,))
    prev_xy = keypoints_to_array(kpts_prev)[[m.queryIdx for m in kpt_matches]]
    curr_xy = keypoints_to_array(kpts_curr)[[m.trainIdx for m in kpt_matches]]

    i, j = np.triu_indices(len(kpt_matches), k=1)
    dist_prev = np.linalg.norm(prev_xy[i] - prev_xy[j], axis=1)
    dist_curr = np.linalg.norm(curr_xy[i] - curr_xy[j], axis=1)
    keep = (dist_prev > np.finfo(np.float64).eps) & (dist_curr >= min_dist)
    return dist_curr[keep] / dist_prev[keep]


def compute_ttc_camera(kpts_prev, kpts_curr, kpt_matches, frame_rate, min_dist=MIN_KPT_DIST):
    """
    TTC from the median scale change of keypoint pairs:
        TTC = -dT / (1 - median(dist_curr / dist_prev))
    NaN when no pair survives the distance filter, inf for a median of 1.
    """
    if frame_rate <= 0:
        raise ValueError(f"frame_rate must be positive, got {frame_rate}")
    ratios = distance_ratios(kpts_prev, kpts_curr, kpt_matches, min_dist)
    if ratios.size == 0:
        return np.nan
    med = np.median(ratios)  # mean of the middle two for even counts
    dT = 1.0 / frame_rate
    with np.errstate(divide="ignore"):
        return float(-dT / (1.0 - np.float64(med)))
