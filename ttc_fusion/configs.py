import numbers
import os
import yaml

SHRINK_FACTOR = 0.10       # shrink ROIs by 10% before lidar containment test
FRAME_RATE = 10.0          # Hz, KITTI camera/lidar rate
Y_SLOT_WIDTH = 0.10        # m, lateral bucket width for closest-point search
RANK_DIVISOR = 3           # pick slot minimum at index count // RANK_DIVISOR
DEDUP_SLOT_MINIMA = True   # collapse equal slot minima before ranking
MIN_KPT_DIST = 100.0       # px, min current-frame keypoint separation
REQUIRE_LIDAR = True       # skip box pairs without lidar in both frames

# lidar crop (ego lane, road surface removed)
CROP_MIN_X, CROP_MAX_X = 2.0, 20.0   # m
CROP_MAX_Y = 2.0                     # m
CROP_MIN_Z, CROP_MAX_Z = -1.5, -0.9  # m, sensor mounted ~1.7 m above road
CROP_MIN_R = 0.1                     # reflectivity

DEFAULTS = {
    "shrink_factor": SHRINK_FACTOR,
    "frame_rate": FRAME_RATE,
    "y_slot_width": Y_SLOT_WIDTH,
    "rank_divisor": RANK_DIVISOR,
    "dedup_slot_minima": DEDUP_SLOT_MINIMA,
    "min_kpt_dist": MIN_KPT_DIST,
    "require_lidar": REQUIRE_LIDAR,
    "crop": {
        "min_x": CROP_MIN_X, "max_x": CROP_MAX_X, "max_y": CROP_MAX_Y,
        "min_z": CROP_MIN_Z, "max_z": CROP_MAX_Z, "min_r": CROP_MIN_R,
    },
}


def load_params(yaml_path=None):
    """
    Merge the `params` section of a YAML file over DEFAULTS.
    Unknown keys are rejected so typos don't silently fall back to defaults.
    """
    params = dict(DEFAULTS)
    params["crop"] = dict(DEFAULTS["crop"])
    if yaml_path is None:
        return params
    if not os.path.exists(yaml_path):
        raise FileNotFoundError(f"Config not found: {yaml_path}")
    with open(yaml_path, "r") as f:
        cfg = yaml.safe_load(f) or {}

    for k, v in (cfg.get("params") or {}).items():
        if k not in params:
            raise ValueError(f"Unknown parameter '{k}' in {yaml_path}")
        if k == "crop":
            unknown = set(v) - set(params["crop"])
            if unknown:
                raise ValueError(f"Unknown crop keys {sorted(unknown)} in {yaml_path}")
            params["crop"].update(v)
        else:
            params[k] = v

    return validate_params(params)


def validate_params(params):
    """Range checks for the tunable settings; returns params unchanged."""
    if not 0.0 <= float(params["shrink_factor"]) < 1.0:
        raise ValueError(f"shrink_factor must be in [0, 1), got {params['shrink_factor']}")
    if float(params["frame_rate"]) <= 0:
        raise ValueError(f"frame_rate must be positive, got {params['frame_rate']}")
    check_slot_params(params["y_slot_width"], params["rank_divisor"])
    return params


def check_slot_params(y_slot_width, rank_divisor=None):
    if not float(y_slot_width) > 0:
        raise ValueError(f"y_slot_width must be positive, got {y_slot_width}")
    if rank_divisor is None:
        return
    if isinstance(rank_divisor, bool) or not isinstance(rank_divisor, numbers.Integral) or rank_divisor < 2:
        raise ValueError(f"rank_divisor must be an integer >= 2, got {rank_divisor}")
