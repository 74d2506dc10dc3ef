"""
Tests for box identity resolution between two frames by keypoint votes.
"""
import numpy as np

from ttc_fusion.matching import NO_MATCH, count_box_votes, best_box_matches, match_bounding_boxes
from ttc_fusion.structures import BoundingBox, DataFrame
from conftest import kp, dm


def _frame(boxes, keypoints):
    return DataFrame(keypoints=keypoints,
                     bounding_boxes=[BoundingBox(box_id=i, roi=roi) for i, roi in boxes])


def _pairs(prev_pts, curr_pts):
    """Frames whose keypoints are matched index to index."""
    return [kp(*p) for p in prev_pts], [kp(*c) for c in curr_pts], [dm(i, i) for i in range(len(prev_pts))]


class TestVotes:

    def test_majority_wins(self):
        # P1 and C1 share 5 matches, P2 and C1 share 1
        prev_pts = [(10 + 10 * i, 50) for i in range(5)] + [(250, 50)]
        curr_pts = [(10 + 10 * i, 50) for i in range(6)]
        kprev, kcurr, matches = _pairs(prev_pts, curr_pts)
        prev = _frame([(1, (0, 0, 100, 100)), (2, (200, 0, 100, 100))], kprev)
        curr = _frame([(7, (0, 0, 100, 100))], kcurr)

        np.testing.assert_array_equal(count_box_votes(matches, prev, curr), [[5], [1]])
        assert best_box_matches(matches, prev, curr) == {7: 1}
        assert match_bounding_boxes(matches, prev, curr) == {1: 7}

    def test_cross_product_of_overlapping_boxes(self):
        kprev, kcurr, matches = _pairs([(75, 50)], [(75, 50)])
        boxes = [(0, (0, 0, 100, 100)), (1, (50, 0, 100, 100))]
        votes = count_box_votes(matches, _frame(boxes, kprev), _frame(boxes, kcurr))
        np.testing.assert_array_equal(votes, np.ones((2, 2), dtype=int))

    def test_tie_keeps_first_previous_box(self):
        prev_pts = [(10, 50), (20, 50), (210, 50), (220, 50)]
        curr_pts = [(10, 50), (20, 50), (30, 50), (40, 50)]
        kprev, kcurr, matches = _pairs(prev_pts, curr_pts)
        curr = _frame([(9, (0, 0, 100, 100))], kcurr)

        prev = _frame([(4, (0, 0, 100, 100)), (5, (200, 0, 100, 100))], kprev)
        assert best_box_matches(matches, prev, curr) == {9: 4}

        prev = _frame([(5, (200, 0, 100, 100)), (4, (0, 0, 100, 100))], kprev)
        assert best_box_matches(matches, prev, curr) == {9: 5}

    def test_unmatched_box_is_not_box_zero(self):
        kprev, kcurr, matches = _pairs([(10, 50)], [(10, 50)])
        prev = _frame([(0, (0, 0, 100, 100))], kprev)
        curr = _frame([(3, (0, 0, 100, 100)), (4, (500, 500, 50, 50))], kcurr)

        best = best_box_matches(matches, prev, curr)
        assert best == {3: 0, 4: NO_MATCH}
        assert best[4] is None
        assert match_bounding_boxes(matches, prev, curr) == {0: 3}

    def test_stronger_current_box_keeps_contested_previous(self):
        prev_pts = [(10 + 10 * i, 50) for i in range(8)]
        curr_pts = [(10, 50), (20, 50), (30, 50)] + [(210 + 10 * i, 50) for i in range(5)]
        kprev, kcurr, matches = _pairs(prev_pts, curr_pts)
        prev = _frame([(1, (0, 0, 100, 100))], kprev)
        curr = _frame([(10, (0, 0, 100, 100)), (11, (200, 0, 100, 100))], kcurr)

        assert best_box_matches(matches, prev, curr) == {10: 1, 11: 1}
        assert match_bounding_boxes(matches, prev, curr) == {1: 11}

    def test_no_matches(self):
        prev = _frame([(1, (0, 0, 100, 100))], [])
        curr = _frame([(2, (0, 0, 100, 100))], [])
        assert count_box_votes([], prev, curr).shape == (1, 1)
        assert best_box_matches([], prev, curr) == {2: NO_MATCH}
        assert match_bounding_boxes([], prev, curr) == {}

    def test_no_previous_boxes(self):
        kprev, kcurr, matches = _pairs([(10, 50)], [(10, 50)])
        curr = _frame([(2, (0, 0, 100, 100))], kcurr)
        assert best_box_matches(matches, _frame([], kprev), curr) == {2: NO_MATCH}

    def test_returns_fresh_map(self):
        kprev, kcurr, matches = _pairs([(10, 50)], [(10, 50)])
        prev = _frame([(1, (0, 0, 100, 100))], kprev)
        curr = _frame([(2, (0, 0, 100, 100))], kcurr)
        a = match_bounding_boxes(matches, prev, curr)
        a[99] = 99
        assert match_bounding_boxes(matches, prev, curr) == {1: 2}
