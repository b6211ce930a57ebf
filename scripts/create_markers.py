#!/usr/bin/env python3
"""Write printable ArUco markers, one PNG per id.

The marker edge in the printout must match `marker_size` in the node config.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import cv2

from tf_pipeline.strategies.detect_aruco import render_marker


def main():
    parser = argparse.ArgumentParser(description="Generate printable ArUco markers")
    parser.add_argument(
        "--output-dir",
        type=str,
        default="markers",
        help="Output directory (default: markers)"
    )
    parser.add_argument(
        "--marker-ids",
        type=int,
        nargs="+",
        required=True,
        help="Marker IDs to generate (e.g., 0 1 2 3)"
    )
    parser.add_argument("--dict", type=str, default="4x4_50", help="ArUco dictionary (default: 4x4_50)")
    parser.add_argument("--size", type=int, default=400, help="Marker edge in pixels (default: 400)")
    parser.add_argument(
        "--quiet-zone",
        type=int,
        default=40,
        help="White margin around the marker in pixels (default: 40)"
    )

    args = parser.parse_args()

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    for marker_id in args.marker_ids:
        try:
            img = render_marker(args.dict, marker_id, args.size, args.quiet_zone)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        output_path = output_dir / f"{args.dict}_id_{marker_id}.png"
        cv2.imwrite(str(output_path), img)
        print(f"Created {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
