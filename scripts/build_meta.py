#!/usr/bin/env python
"""CLI tool to build the meta structure of a mask and report a summary.

This script reads a 3D mask saved with ``numpy.save``, builds the column <->
voxel mappings, searchlight neighbours and ROI groups, and prints what it
found.

Example usage:
    python scripts/build_meta.py mask.npy
    python scripts/build_meta.py mask.npy --radius 2 --metric euclidean
    python scripts/build_meta.py mask.npy --adjacency
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from idm_meta import ConfigurationError, VoxelMeta, create_meta_from_mask


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Build the IDM meta structure (column <-> voxel mappings, "
        "neighbours and ROIs) for a 3D mask.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s mask.npy
      Report voxel, neighbour and ROI counts for mask.npy

  %(prog)s mask.npy --radius 2
      Use a searchlight radius of 2 voxels

  %(prog)s mask.npy --adjacency
      Also build the adjacency matrix
""",
    )

    parser.add_argument(
        "input",
        type=Path,
        help="Mask file (.npy) holding a 3D array of non-negative labels",
    )

    parser.add_argument(
        "-r",
        "--radius",
        type=int,
        default=1,
        help="Searchlight radius in voxels (default: 1)",
    )

    parser.add_argument(
        "--metric",
        type=str,
        default="chebyshev",
        choices=["chebyshev", "euclidean"],
        help="Distance used for the radius test (default: chebyshev)",
    )

    parser.add_argument(
        "--adjacency",
        action="store_true",
        help="Build the sparse adjacency matrix (only with radius 1)",
    )

    parser.add_argument(
        "--no-accelerate",
        action="store_true",
        help="Use the numpy neighbour search even if numba is installed",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress messages",
    )

    return parser.parse_args(args)


def print_summary(meta: VoxelMeta) -> None:
    """Print a summary of a meta structure."""
    counts = meta.number_of_neighbours
    print(f"  Dimensions: {meta.dimx} x {meta.dimy} x {meta.dimz}")
    print(f"  Voxels: {meta.n_voxels:,}")
    print(f"  Radius: {meta.radius} ({meta.config.metric}), strategy: {meta.strategy}")
    if meta.n_voxels:
        print(
            f"  Neighbours per voxel: min {counts.min()}, "
            f"mean {counts.mean():.2f}, max {counts.max()}"
        )
    print(f"  ROIs: {meta.n_rois}")
    for label, columns in meta.iter_rois():
        print(f"    {label}: {len(columns):,} voxels")
    if meta.adjacency is not None:
        print(f"  Adjacency non-zeros: {meta.adjacency.nnz:,}")


def main(args: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parsed = parse_args(args)

    logging.basicConfig(
        level=logging.INFO if parsed.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    input_path: Path = parsed.input
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    print(f"Reading mask: {input_path}")
    try:
        mask = np.load(input_path)
    except (OSError, ValueError) as e:
        print(f"Error reading mask: {e}", file=sys.stderr)
        return 1

    try:
        meta = create_meta_from_mask(
            mask,
            radius=parsed.radius,
            metric=parsed.metric,
            build_adjacency=parsed.adjacency,
            accelerate=False if parsed.no_accelerate else None,
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"Error: invalid mask: {e}", file=sys.stderr)
        return 1

    print_summary(meta)

    return 0


if __name__ == "__main__":
    sys.exit(main())
