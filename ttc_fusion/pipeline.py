import logging

from .clustering import cluster_lidar_with_roi, cluster_kpt_matches_with_roi
from .configs import DEFAULTS, validate_params
from .matching import match_bounding_boxes
from .projection import crop_lidar_points
from .ttc import compute_ttc_lidar, compute_ttc_camera

logger = logging.getLogger(__name__)


def associate_frame(frame, calib, shrink_factor=DEFAULTS["shrink_factor"], crop=None):
    """
    Crop (optional) and distribute the frame's lidar points over its boxes.
    `crop` is a dict of crop_lidar_points keyword arguments.
    """
    pts = frame.lidar_points
    if crop is not None:
        pts = crop_lidar_points(pts, **crop)
        frame.lidar_points = pts
    cluster_lidar_with_roi(frame.bounding_boxes, pts, calib, shrink_factor)
    return frame


def compute_frame_pair_ttc(prev_frame, curr_frame, frame_rate=DEFAULTS["frame_rate"],
                           params=None):
    """
    Resolve boxes between two associated frames and estimate both TTCs per
    resolved pair. The keypoint matches of each resolved current box are
    rebuilt from curr_frame.kpt_matches on every call.

    Returns (bb_best_matches, results) where results is a list of dicts.
    """
    p = dict(DEFAULTS)
    p.update(params or {})

    bb_best_matches = match_bounding_boxes(curr_frame.kpt_matches, prev_frame, curr_frame)
    results = []
    for prev_id, curr_id in bb_best_matches.items():
        prev_bb = prev_frame.box_by_id(prev_id)
        curr_bb = curr_frame.box_by_id(curr_id)
        n_prev, n_curr = len(prev_bb.lidar_points), len(curr_bb.lidar_points)
        if p["require_lidar"] and (n_prev == 0 or n_curr == 0):
            logger.debug("skip pair %s->%s: no lidar (%d/%d)", prev_id, curr_id, n_prev, n_curr)
            continue

        ttc_lidar = compute_ttc_lidar(prev_bb.lidar_points, curr_bb.lidar_points, frame_rate,
                                      y_slot_width=p["y_slot_width"],
                                      rank_divisor=p["rank_divisor"],
                                      deduplicate=p["dedup_slot_minima"])

        curr_bb.kpt_matches, curr_bb.keypoints = [], []  # rebuilt on every call
        cluster_kpt_matches_with_roi(curr_bb, prev_frame.keypoints, curr_frame.keypoints,
                                     curr_frame.kpt_matches)
        ttc_camera = compute_ttc_camera(prev_frame.keypoints, curr_frame.keypoints,
                                        curr_bb.kpt_matches, frame_rate,
                                        min_dist=p["min_kpt_dist"])

        results.append({
            "prev_box_id": prev_id, "curr_box_id": curr_id,
            "n_lidar_prev": n_prev, "n_lidar_curr": n_curr,
            "n_kpt_matches": len(curr_bb.kpt_matches),
            "ttc_lidar": ttc_lidar, "ttc_camera": ttc_camera,
        })
        logger.info("box %s->%s TTC lidar=%.2fs camera=%.2fs", prev_id, curr_id, ttc_lidar, ttc_camera)
    return bb_best_matches, results


class TTCPipeline:
    """
    Two-frame ring buffer: every pushed frame is associated with its lidar
    points and, once a previous frame exists, compared against it.
    """
    def __init__(self, calib, params=None):
        self.calib = calib
        self.params = dict(DEFAULTS)
        self.params.update(params or {})
        validate_params(self.params)
        self.prev_frame = None

    def push(self, frame, crop=True):
        """Returns (bb_best_matches, results); both empty for the first frame."""
        associate_frame(frame, self.calib, self.params["shrink_factor"],
                        crop=self.params["crop"] if crop else None)
        bb_best_matches, results = {}, []
        if self.prev_frame is not None:
            bb_best_matches, results = compute_frame_pair_ttc(
                self.prev_frame, frame, self.params["frame_rate"], self.params)
        self.prev_frame = frame
        return bb_best_matches, results

    def reset(self):
        self.prev_frame = None
