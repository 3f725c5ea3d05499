"""
ShapeCaptcha — Mask Asset Render Script
Renders the four high-resolution shape masks (triangle, hexagon,
trapezoid, star) into the configured mask asset directory.
Run once before first launch: python -m scripts.render_mask_assets
Without the assets the service falls back to hard-edged procedural masks.
"""

import argparse
import sys
from pathlib import Path

from app.config import get_settings
from app.modules.shapes.asset_renderer import DEFAULT_SCALE, write_mask_assets


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output directory (default: MASK_ASSET_DIR from settings)",
    )
    parser.add_argument(
        "--scale",
        type=int,
        default=DEFAULT_SCALE,
        help=f"Supersampling factor over the 70×70 frame (default: {DEFAULT_SCALE})",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    out_dir = args.out or get_settings().mask_asset_dir

    print("\n🧩 ShapeCaptcha — Mask Assets\n" + "─" * 40)
    print(f"Output directory: {out_dir}")
    print(f"Render size:      {70 * args.scale}×{70 * args.scale}\n")

    if args.scale < 1:
        print("  ✗ --scale must be at least 1.")
        sys.exit(1)

    for path in write_mask_assets(Path(out_dir), args.scale):
        print(f"  ✓ {path.name}")

    print("\n" + "─" * 40)
    print("✅ Mask assets ready. Restart ShapeCaptcha to pick them up.\n")


if __name__ == "__main__":
    main()
