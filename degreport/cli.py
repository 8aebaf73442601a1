"""Command-line interface for degreport."""

from __future__ import annotations

import argparse
from typing import Iterable

from degreport.pipeline.runner import run_pipeline


def run_main(argv: Iterable[str] | None = None) -> int:
    """Run the report pipeline.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code (0 when every artifact was written, 1 otherwise).
    """
    parser = argparse.ArgumentParser(description="Differential-expression report pipeline")
    parser.add_argument(
        "--config",
        default="configs/degreport_example.json",
        help="Path to JSON config",
    )
    parser.add_argument(
        "--outdir", default=None, help="Output directory root (overrides config)"
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    summary = run_pipeline(args.config, outdir=args.outdir)
    print(f"features={summary.n_features}")
    print(f"ranked={summary.n_ranked}")
    for thr, n in summary.n_significant.items():
        print(f"padj<{thr:g}={n}")
    if summary.correlation is not None:
        c = summary.correlation
        print(f"pearson_r={c.r} p={c.p_value} ({c.label_x} vs {c.label_y})")
    for name, reason in sorted(summary.failed_artifacts.items()):
        print(f"failed {name}: {reason}")
    return 0 if summary.ok else 1


def main(argv: Iterable[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(description="degreport CLI")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="Run the differential-expression report pipeline")

    args, remainder = parser.parse_known_args(list(argv) if argv is not None else None)
    if args.command == "run":
        return run_main(remainder)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
