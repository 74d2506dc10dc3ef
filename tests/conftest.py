import cv2
import numpy as np
import pytest

from ttc_fusion.projection import make_calib

F, CX, CY = 1000.0, 640.0, 360.0

# lidar (x fwd, y left, z up) -> camera (x right, y down, z fwd)
LIDAR_TO_CAM = np.array([[0, -1, 0, 0],
                         [0, 0, -1, 0],
                         [1, 0, 0, 0],
                         [0, 0, 0, 1]], dtype=np.float64)


@pytest.fixture
def calib():
    P = np.array([[F, 0, CX, 0],
                  [0, F, CY, 0],
                  [0, 0, 1, 0]], dtype=np.float64)
    return make_calib(P, np.eye(3), LIDAR_TO_CAM)


def lidar_at(u, v, x, r=0.5):
    """Lidar point at forward distance x that projects onto pixel (u, v)."""
    return [x, -(u - CX) * x / F, -(v - CY) * x / F, r]


def kp(x, y):
    return cv2.KeyPoint(float(x), float(y), 1.0)


def dm(q, t):
    return cv2.DMatch(int(q), int(t), 0.0)
