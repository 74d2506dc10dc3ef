import logging
import os
from dataclasses import dataclass

import numpy as np
import yaml

from .configs import CROP_MIN_X, CROP_MAX_X, CROP_MAX_Y, CROP_MIN_Z, CROP_MAX_Z, CROP_MIN_R

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraCalibration:
    P_rect: np.ndarray  # (3, 4) projection after rectification
    R_rect: np.ndarray  # (4, 4) rectifying rotation, padded
    RT: np.ndarray      # (4, 4) lidar -> camera rigid transform

    @property
    def lidar_to_image(self):
        return self.P_rect @ self.R_rect @ self.RT


def _pad_4x4(M, name):
    M = np.asarray(M, dtype=np.float64)
    if M.shape == (4, 4):
        return M
    out = np.eye(4, dtype=np.float64)
    if M.shape == (3, 3):
        out[:3, :3] = M
    elif M.shape == (3, 4):
        out[:3, :] = M
    else:
        raise ValueError(f"{name} must be 3x3, 3x4 or 4x4, got {M.shape}")
    return out


def make_calib(P_rect, R_rect, RT):
    P = np.asarray(P_rect, dtype=np.float64)
    if P.shape != (3, 4):
        raise ValueError(f"P_rect must be 3x4, got {P.shape}")
    return CameraCalibration(P_rect=P, R_rect=_pad_4x4(R_rect, "R_rect"), RT=_pad_4x4(RT, "RT"))


def load_calib(calib_yaml):
    """
    Read a KITTI-style calibration YAML with flat or nested lists:
        P_rect: 3x4   R_rect: 3x3 (or 4x4)   RT: 3x4 (or 4x4)
    RT may also be given as separate R (3x3) and t (3) entries.
    """
    if not os.path.exists(calib_yaml):
        raise FileNotFoundError(f"Calibration not found: {calib_yaml}")
    with open(calib_yaml, "r") as f:
        cal = yaml.safe_load(f)

    P = np.array(cal["P_rect"], dtype=np.float64).reshape(3, 4)
    R_rect = np.array(cal["R_rect"], dtype=np.float64)
    R_rect = R_rect.reshape(4, 4) if R_rect.size == 16 else R_rect.reshape(3, 3)
    if "RT" in cal:
        RT = np.array(cal["RT"], dtype=np.float64)
        RT = RT.reshape(4, 4) if RT.size == 16 else RT.reshape(3, 4)
    else:
        R = np.array(cal["R"], dtype=np.float64).reshape(3, 3)
        t = np.array(cal["t"], dtype=np.float64).reshape(3, 1)
        RT = np.hstack([R, t])
    return make_calib(P, R_rect, RT)


def project_lidar_point(point, calib):
    """
    Project one lidar point (x, y, z[, r]) to pixel (u, v).
    No depth check: points at or behind the image plane give garbage/inf,
    filter them first (see crop_lidar_points).
    """
    X = np.array([point[0], point[1], point[2], 1.0], dtype=np.float64)
    Y = calib.P_rect @ calib.R_rect @ calib.RT @ X
    return Y[0] / Y[2], Y[1] / Y[2]


def project_lidar_points(points, calib):
    """
    Vectorized projection of an (N, 3+) lidar array.

    Returns:
        uv: (N, 2) pixel coordinates
        depth: (N,) homogeneous depth Y2 used for the perspective divide
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.size == 0:
        return np.empty((0, 2)), np.empty((0,))
    Xh = np.hstack([pts[:, :3], np.ones((pts.shape[0], 1))])  # N x 4
    Y = (calib.lidar_to_image @ Xh.T).T                       # N x 3
    with np.errstate(divide="ignore", invalid="ignore"):
        uv = Y[:, :2] / Y[:, 2:3]
    return uv, Y[:, 2]


def crop_lidar_points(points, min_x=CROP_MIN_X, max_x=CROP_MAX_X, max_y=CROP_MAX_Y,
                      min_z=CROP_MIN_Z, max_z=CROP_MAX_Z, min_r=CROP_MIN_R):
    """Keep points in the ego-lane volume ahead of the sensor."""
    pts = np.asarray(points, dtype=np.float64)
    if pts.size == 0:
        return pts.reshape(0, pts.shape[1] if pts.ndim == 2 else 3)
    x, y, z = pts[:, 0], pts[:, 1], pts[:, 2]
    keep = (x >= min_x) & (x <= max_x) & (np.abs(y) <= max_y) & (z >= min_z) & (z <= max_z)
    if pts.shape[1] > 3:
        keep &= pts[:, 3] >= min_r
    logger.debug("crop: kept %d / %d lidar points", int(keep.sum()), len(pts))
    return pts[keep]
