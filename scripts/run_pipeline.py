#!/usr/bin/env python3
"""Run the differential-expression report pipeline."""

from __future__ import annotations

import argparse

from degreport.pipeline.runner import run_pipeline


def main() -> int:
    parser = argparse.ArgumentParser(description="Differential-expression report pipeline")
    parser.add_argument(
        "--config",
        default="configs/degreport_example.json",
        help="Path to JSON config",
    )
    parser.add_argument("--outdir", default=None, help="Output directory root")
    args = parser.parse_args()
    summary = run_pipeline(args.config, outdir=args.outdir)
    return 0 if summary.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
