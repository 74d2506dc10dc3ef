from .configs import DEFAULTS, load_params
from .structures import BoundingBox, DataFrame
from .projection import CameraCalibration, make_calib, load_calib, project_lidar_point, project_lidar_points, crop_lidar_points
from .clustering import shrink_roi, roi_contains, cluster_lidar_with_roi, cluster_kpt_matches_with_roi
from .matching import NO_MATCH, count_box_votes, best_box_matches, match_bounding_boxes
from .ttc import lidar_slot_minima, robust_closest_distance, compute_ttc_lidar, distance_ratios, compute_ttc_camera
from .pipeline import associate_frame, compute_frame_pair_ttc, TTCPipeline

__version__ = "0.1.0"
