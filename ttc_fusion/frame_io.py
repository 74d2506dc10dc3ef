# ttc_fusion/frame_io.py
import os
import re
from typing import List, Optional

import cv2
import numpy as np
import pandas as pd

from .structures import BoundingBox, DataFrame

_DIGITS = re.compile(r'(\d+)')
RESULT_COLUMNS = ["frame", "prev_box_id", "curr_box_id", "n_lidar_prev", "n_lidar_curr",
                  "n_kpt_matches", "ttc_lidar", "ttc_camera"]


def frame_index(name: str) -> Optional[int]:
    """First integer in a filename: '000012.frame.npz' -> 12."""
    m = _DIGITS.search(os.path.basename(name))
    return int(m.group(1)) if m else None


def load_lidar(path: str) -> np.ndarray:
    """
    Read a lidar cloud as an (N, 3/4) float array.
    .bin = KITTI float32 x,y,z,r ; .npy ; .pcd via open3d.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Lidar file not found: {path}")
    ext = os.path.splitext(path)[1].lower()
    if ext == ".bin":
        return np.fromfile(path, dtype=np.float32).reshape(-1, 4).astype(np.float64)
    if ext == ".npy":
        return np.load(path).astype(np.float64)
    if ext == ".pcd":
        import open3d as o3d
        pcd = o3d.io.read_point_cloud(path)
        return np.asarray(pcd.points, dtype=np.float64)
    raise ValueError(f"Unsupported lidar format: {path}")


def _find_lidar(frame_path: str) -> Optional[str]:
    stem = frame_path[:-len(".frame.npz")] if frame_path.endswith(".frame.npz") else os.path.splitext(frame_path)[0]
    for ext in (".bin", ".npy", ".pcd"):
        if os.path.exists(stem + ext):
            return stem + ext
    return None


def load_frame(frame_path: str, lidar_path: Optional[str] = None) -> DataFrame:
    """
    Build a DataFrame from a `<stem>.frame.npz` file:
      boxes     (B, 5) id, x, y, w, h  [+ class_id, confidence]
      keypoints (K, 2) pixel positions
      matches   (M, 2) previous-frame index, current-frame index (optional)
      lidar     (N, 3/4) (optional, else a sibling .bin/.npy/.pcd is used)
    """
    if not os.path.exists(frame_path):
        raise FileNotFoundError(f"Frame file not found: {frame_path}")
    F = np.load(frame_path)

    box_rows = np.asarray(F["boxes"], dtype=np.float64)
    box_rows = np.atleast_2d(box_rows) if box_rows.size else np.empty((0, 5))
    boxes = []
    for row in box_rows:
        bb = BoundingBox(box_id=int(row[0]), roi=tuple(float(v) for v in row[1:5]))
        if len(row) >= 7:
            bb.class_id, bb.confidence = int(row[5]), float(row[6])
        boxes.append(bb)

    keypoints = [cv2.KeyPoint(float(u), float(v), 1.0) for u, v in np.asarray(F["keypoints"]).reshape(-1, 2)]
    matches = []
    if "matches" in F:
        matches = [cv2.DMatch(int(q), int(t), 0.0) for q, t in np.asarray(F["matches"]).reshape(-1, 2)]

    if "lidar" in F:
        lidar = np.asarray(F["lidar"], dtype=np.float64)
    else:
        lidar_path = lidar_path or _find_lidar(frame_path)
        lidar = load_lidar(lidar_path) if lidar_path else np.empty((0, 3))

    return DataFrame(keypoints=keypoints, bounding_boxes=boxes, lidar_points=lidar,
                     kpt_matches=matches, name=os.path.basename(frame_path))


def results_table(rows: List[dict]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def save_results_csv(rows: List[dict], out_csv: str) -> pd.DataFrame:
    df = results_table(rows)
    os.makedirs(os.path.dirname(out_csv) or ".", exist_ok=True)
    df.to_csv(out_csv, index=False)
    return df
