"""
Lidar + camera TTC over a directory of frames.

Each frame is a `<stem>.frame.npz` (boxes, keypoints, matches to the previous
frame, optional lidar) with an optional sibling `<stem>.bin/.npy/.pcd` cloud.
"""
import argparse, glob, logging, os, sys
import numpy as np

from ttc_fusion.configs import load_params
from ttc_fusion.frame_io import load_frame, save_results_csv
from ttc_fusion.pipeline import TTCPipeline
from ttc_fusion.projection import load_calib


def main():
    ap = argparse.ArgumentParser(description="Time-to-collision from lidar points and keypoint matches")
    ap.add_argument("--frames_dir", required=True, help="Directory with <stem>.frame.npz files")
    ap.add_argument("--calib", default="config/kitti_ttc.yaml", help="Calibration + params YAML")
    ap.add_argument("--out_csv", default="data/out/ttc.csv", help="Per-box TTC results")
    ap.add_argument("--frame_rate", type=float, default=None, help="Override params.frame_rate (Hz)")
    ap.add_argument("--shrink", type=float, default=None, help="Override params.shrink_factor")
    ap.add_argument("--no_crop", action="store_true", help="Use the full lidar cloud")
    ap.add_argument("--max_frames", type=int, default=0, help="Process at most N frames (0 = all)")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    print(f"[INFO] Loading calibration from {args.calib}")
    calib = load_calib(args.calib)
    params = load_params(args.calib)
    if args.frame_rate is not None:
        params["frame_rate"] = args.frame_rate
    if args.shrink is not None:
        params["shrink_factor"] = args.shrink
    pipeline = TTCPipeline(calib, params)

    frames = sorted(glob.glob(os.path.join(args.frames_dir, "*.frame.npz")))
    if args.max_frames > 0:
        frames = frames[:args.max_frames]
    if not frames:
        print(f"[ERROR] No *.frame.npz files in {args.frames_dir}")
        sys.exit(1)

    rows = []
    for f in frames:
        stem = os.path.basename(f)[:-len(".frame.npz")]
        frame = load_frame(f)
        bb_best_matches, results = pipeline.push(frame, crop=not args.no_crop)
        for r in results:
            r["frame"] = stem
            rows.append(r)
            print(f"{stem} box {r['prev_box_id']}->{r['curr_box_id']} "
                  f"TTC lidar={r['ttc_lidar']:.2f}s camera={r['ttc_camera']:.2f}s "
                  f"(pts {r['n_lidar_curr']}, matches {r['n_kpt_matches']})")
        if len(bb_best_matches) == 0 and f != frames[0]:
            print(f"[WARNING] {stem}: no box could be matched to the previous frame")

    df = save_results_csv(rows, args.out_csv)
    valid = df[np.isfinite(df["ttc_lidar"].astype(float)) & np.isfinite(df["ttc_camera"].astype(float))]
    print(f"[OK] {len(df)} box pairs over {len(frames)} frames ({len(valid)} with finite TTCs) -> {args.out_csv}")


if __name__ == "__main__":
    main()
