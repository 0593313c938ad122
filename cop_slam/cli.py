#!/usr/bin/env python3
"""
Run COP-SLAM on a relative-pose file and a loop-closure file.

Usage:
  cop_slam_run --poses odom.txt --closures loops.txt --output corrected.tum
  cop_slam_run --poses odom.txt --closures loops.txt --preset twopass_sim3 --reports reports.jsonl
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml

from cop_slam.backend.config import get_default_config_paths, get_preset_path, load_chain_config
from cop_slam.backend.pipeline import run_cop_slam
from cop_slam.common.errors import IndexOutOfRange
from cop_slam.config import CorrectionConfig
from cop_slam.frontend.chain_io import load_loop_closures, load_pose_chain, save_trajectory


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Closed-form loop-closure correction of a pose chain")
    ap.add_argument("--poses", required=True, help="Relative-pose file")
    ap.add_argument("--closures", required=True, help="Loop-closure file")
    ap.add_argument("--config", required=False, help="Base YAML config (defaults to packaged cop_slam_base.yaml)")
    ap.add_argument("--preset", required=False, help="Preset name under config/presets")
    ap.add_argument("--method", choices=["onepass", "twopass"], help="Override correction method")
    ap.add_argument("--scale", action="store_true", help="Enable scale correction (two-pass only)")
    ap.add_argument("--output", required=False, help="Output trajectory (TUM style)")
    ap.add_argument("--reports", required=False, help="Output per-closure reports (JSON lines)")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    return ap


def _load_config(args: argparse.Namespace) -> CorrectionConfig:
    base_path = Path(args.config) if args.config else get_default_config_paths()[0]
    if not base_path.exists():
        base_path = None

    preset_path = None
    if args.preset:
        preset_path = get_preset_path(args.preset)
        if preset_path is None:
            raise FileNotFoundError(f"Unknown preset: {args.preset}")

    overrides = {}
    if args.method:
        overrides["method"] = args.method
    if args.scale:
        overrides["scale_correction_enabled"] = True

    return CorrectionConfig.from_params(load_chain_config(base_path, preset_path, overrides))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="[%(name)s] %(levelname)s: %(message)s")

    try:
        config = _load_config(args)
        chain = load_pose_chain(args.poses, config=config)
        closures = load_loop_closures(args.closures)
        reports = run_cop_slam(chain, closures)
    except (FileNotFoundError, IndexOutOfRange, ValueError, yaml.YAMLError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    if args.output:
        save_trajectory(args.output, chain)
    if args.reports:
        with open(args.reports, "w", encoding="utf-8") as f:
            for report in reports:
                f.write(report.to_json() + "\n")

    worst = max((r.metrics["residual_trans_after"] for r in reports), default=0.0)
    print(
        f"Corrected {chain.size} poses with {len(reports)} loop closures "
        f"({config.method.value}); worst residual translation {worst:.6f}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
