from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import numpy as np


def _empty_cloud():
    return np.empty((0, 3), dtype=np.float64)


@dataclass
class BoundingBox:
    box_id: int
    roi: Tuple[float, float, float, float]   # x, y, w, h in pixels
    class_id: int = -1
    confidence: float = 0.0
    lidar_points: np.ndarray = field(default_factory=_empty_cloud)  # (N, 3) or (N, 4)
    keypoints: list = field(default_factory=list)    # current-frame keypoints
    kpt_matches: list = field(default_factory=list)  # DMatch prev -> curr

    def add_lidar_points(self, pts: np.ndarray) -> None:
        pts = np.asarray(pts, dtype=np.float64)
        if pts.size == 0:
            return
        if self.lidar_points.size == 0:
            self.lidar_points = pts.copy()
        else:
            n = min(self.lidar_points.shape[1], pts.shape[1])
            self.lidar_points = np.vstack([self.lidar_points[:, :n], pts[:, :n]])


@dataclass
class DataFrame:
    """Everything known about one camera/lidar capture."""
    keypoints: list = field(default_factory=list)
    bounding_boxes: List[BoundingBox] = field(default_factory=list)
    lidar_points: np.ndarray = field(default_factory=_empty_cloud)
    kpt_matches: list = field(default_factory=list)  # matches from the previous frame into this one
    name: Optional[str] = None
    timestamp: Optional[float] = None

    def box_by_id(self, box_id: int) -> Optional[BoundingBox]:
        for bb in self.bounding_boxes:
            if bb.box_id == box_id:
                return bb
        return None
