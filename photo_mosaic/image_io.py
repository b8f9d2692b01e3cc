"""Image loading, saving, directory scanning and comparison-grid generation."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from photo_mosaic.errors import LoadError, OutputError

logger = logging.getLogger(__name__)


def list_candidate_files(
    folder: str | Path,
    extensions: Iterable[str],
) -> list[Path]:
    """Regular files in *folder* with a supported extension, sorted by name.

    Sub-directories, symlinks to directories and other non-regular entries
    are skipped.
    """
    folder = Path(folder)
    if not folder.is_dir():
        msg = f"Candidate directory not found: {folder}"
        raise LoadError(msg)
    wanted = {e.lower() for e in extensions}
    return sorted(
        (f for f in folder.iterdir()
         if f.is_file() and f.suffix.lower() in wanted),
        key=lambda f: f.name,
    )


def read_size(path: str | Path) -> tuple[int, int]:
    """Return ``(width, height)`` after decoding the pixels once.

    Decoding here means a tile with a valid header but corrupt or
    truncated pixel data fails at load time, not later while weighing.
    """
    try:
        with Image.open(path) as img:
            img.load()
            return img.width, img.height
    except (OSError, SyntaxError) as exc:
        msg = f"Cannot read image {path}: {exc}"
        raise LoadError(msg) from exc


def load_image(path: str | Path) -> np.ndarray:
    """Load an image decoded to 24-bit RGB.

    Returns:
        (H, W, 3) uint8 array.
    """
    try:
        with Image.open(path) as img:
            return np.array(img.convert("RGB"), dtype=np.uint8)
    except (OSError, SyntaxError) as exc:
        msg = f"Cannot read image {path}: {exc}"
        raise LoadError(msg) from exc


def load_region(path: str | Path, width: int, height: int) -> np.ndarray:
    """Load the top-left ``width x height`` region of an image.

    Returns:
        (height, width, 3) uint8 array.
    """
    pixels = load_image(path)
    h, w = pixels.shape[:2]
    if w < width or h < height:
        msg = f"Image {path} is {w}x{h}, smaller than the {width}x{height} cell"
        raise LoadError(msg)
    return pixels[:height, :width]


def save_image(array: np.ndarray, path: str | Path) -> None:
    """Write *array* to *path*; a failed write leaves no partial file behind."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.fromarray(array.astype(np.uint8)).save(path)
    except (OSError, ValueError) as exc:
        path.unlink(missing_ok=True)
        msg = f"Cannot write image {path}: {exc}"
        raise OutputError(msg) from exc
    logger.info("Saved %s (%dx%d)", path, array.shape[1], array.shape[0])


def make_comparison_grid(
    reference: np.ndarray,
    targets: np.ndarray,
    mosaic: np.ndarray,
    output_path: str | Path,
    panel_height: int = 480,
) -> None:
    """Create a 3-panel comparison: Reference | Cell targets | Mosaic.

    All panels are scaled to *panel_height* keeping the mosaic's aspect
    ratio, so the slightly cropped canvas lines up with the reference.
    """
    mh, mw = mosaic.shape[:2]
    panel_w = max(1, round(mw * panel_height / mh))
    label_height = 36

    ref_img = Image.fromarray(reference).resize((panel_w, panel_height), Image.LANCZOS)
    target_img = Image.fromarray(targets).resize((panel_w, panel_height), Image.NEAREST)
    mosaic_img = Image.fromarray(mosaic).resize((panel_w, panel_height), Image.LANCZOS)

    panels = [ref_img, target_img, mosaic_img]
    labels = ["Reference", "Cell targets", f"Mosaic {mw}x{mh}"]

    gap = 8
    total_w = len(panels) * panel_w + (len(panels) - 1) * gap
    total_h = panel_height + label_height

    canvas = Image.new("RGB", (total_w, total_h), (30, 30, 30))
    draw = ImageDraw.Draw(canvas)

    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 18,
        )
    except OSError:
        font = ImageFont.load_default()

    for i, (panel, label) in enumerate(zip(panels, labels, strict=True)):
        x = i * (panel_w + gap)
        canvas.paste(panel, (x, label_height))

        bbox = draw.textbbox((0, 0), label, font=font)
        text_w = bbox[2] - bbox[0]
        tx = x + (panel_w - text_w) // 2
        draw.text((tx, 6), label, fill=(220, 220, 220), font=font)

    save_image(np.array(canvas), output_path)
