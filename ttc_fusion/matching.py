import logging
from typing import Dict, Optional

import numpy as np

from .clustering import roi_contains, keypoints_to_array

logger = logging.getLogger(__name__)

NO_MATCH = None  # previous box id for a current box that collected no votes


def count_box_votes(matches, prev_frame, curr_frame):
    """
    Vote table V[p, c] = number of matches whose previous keypoint lies in
    previous box p and whose current keypoint lies in current box c.
    A match inside several boxes votes for every (p, c) combination.
    """
    P, C = len(prev_frame.bounding_boxes), len(curr_frame.bounding_boxes)
    if P == 0 or C == 0 or len(matches) == 0:
        return np.zeros((P, C), dtype=int)

    q = np.array([m.queryIdx for m in matches])
    t = np.array([m.trainIdx for m in matches])
    pts_prev = keypoints_to_array(prev_frame.keypoints)[q]
    pts_curr = keypoints_to_array(curr_frame.keypoints)[t]

    in_prev = np.stack([roi_contains(bb.roi, pts_prev) for bb in prev_frame.bounding_boxes]).astype(int)
    in_curr = np.stack([roi_contains(bb.roi, pts_curr) for bb in curr_frame.bounding_boxes]).astype(int)
    return in_prev @ in_curr.T


def _best_prev_index(votes, c) -> Optional[int]:
    if votes.shape[0] == 0 or votes[:, c].max() == 0:
        return None
    return int(np.argmax(votes[:, c]))  # first max wins


def best_box_matches(matches, prev_frame, curr_frame) -> Dict[int, Optional[int]]:
    """
    For every current box, the previous box id with the most shared matches.
    Ties keep the first previous box in list order; a box with no votes maps
    to NO_MATCH.
    """
    votes = count_box_votes(matches, prev_frame, curr_frame)
    logger.debug("box votes (prev x curr):\n%s", votes)
    best = {}
    for c, cbb in enumerate(curr_frame.bounding_boxes):
        p = _best_prev_index(votes, c)
        best[cbb.box_id] = NO_MATCH if p is None else prev_frame.bounding_boxes[p].box_id
    return best


def match_bounding_boxes(matches, prev_frame, curr_frame) -> Dict[int, int]:
    """
    Fresh previous-id -> current-id map of resolved box pairs.
    Unmatched current boxes are left out. If two current boxes pick the same
    previous box, the one with more votes keeps it (ties: first current box).
    """
    votes = count_box_votes(matches, prev_frame, curr_frame)
    bb_best_matches, best_votes = {}, {}
    for c, cbb in enumerate(curr_frame.bounding_boxes):
        p = _best_prev_index(votes, c)
        if p is None:
            continue
        prev_id = prev_frame.bounding_boxes[p].box_id
        n = int(votes[p, c])
        if prev_id in best_votes and best_votes[prev_id] >= n:
            logger.debug("box %s: previous box %s already taken by %s",
                         cbb.box_id, prev_id, bb_best_matches[prev_id])
            continue
        bb_best_matches[prev_id] = cbb.box_id
        best_votes[prev_id] = n
    return bb_best_matches
