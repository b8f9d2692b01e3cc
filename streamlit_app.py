"""
Photo Mosaic — web front end

Run with:
    streamlit run streamlit_app.py
"""

from __future__ import annotations

import io
import tempfile
from pathlib import Path

import streamlit as st
from PIL import Image

from photo_mosaic.config import MosaicConfig
from photo_mosaic.errors import MosaicError
from photo_mosaic.pipeline import Stage, build_mosaic

# -- Page config -------------------------------------------------------
st.set_page_config(
    page_title="Photo Mosaic",
    page_icon=None,
    layout="wide",
    initial_sidebar_state="expanded",
)

_DEFAULTS = MosaicConfig()

# -- CSS ---------------------------------------------------------------
st.markdown("""
<style>
    .stApp {
        background-color: #faf9f6;
        color: #2a2a2a;
        font-family: 'Inter', 'Helvetica Neue', sans-serif;
    }
    .block-container {
        max-width: 1100px;
        padding-top: 3rem;
    }
    .gallery-title {
        font-family: 'Georgia', serif;
        font-size: 2.6rem;
        font-weight: 300;
        letter-spacing: 0.02em;
        margin-bottom: 0.2rem;
    }
    .gallery-caption {
        color: #8a8a8a;
        font-size: 0.85rem;
        letter-spacing: 0.08em;
        text-transform: uppercase;
    }
</style>
""", unsafe_allow_html=True)

st.markdown('<div class="gallery-title">Photo Mosaic</div>', unsafe_allow_html=True)
st.markdown(
    '<div class="gallery-caption">One picture, rebuilt from many</div>',
    unsafe_allow_html=True,
)

# -- Sidebar controls --------------------------------------------------
with st.sidebar:
    st.header("Grid")
    grid_side = st.slider("Cells per side", 4, 120, _DEFAULTS.grid_side)
    tolerance = st.number_input(
        "Aspect tolerance", 0.001, 1.0, _DEFAULTS.aspect_tolerance, step=0.005,
        format="%.3f",
    )
    min_cell_side = st.number_input("Smallest cell side", 1, 500, _DEFAULTS.min_cell_side)

    st.header("Fitting")
    repeat_cap = st.number_input("Repeat cap", 1, 10_000, _DEFAULTS.repeat_cap)
    spacing = st.number_input("Spacing", 0, 100, _DEFAULTS.spacing)

    st.header("Colour")
    color_filter = st.checkbox("Blend toward cell colour", _DEFAULTS.color_filter)
    filter_percent = st.slider(
        "Blend strength", 0.0, 1.0, _DEFAULTS.filter_percent, step=0.05,
        disabled=not color_filter,
    )

# -- Uploads -----------------------------------------------------------
col_ref, col_tiles = st.columns(2)
with col_ref:
    reference_file = st.file_uploader(
        "Reference image", type=[e.lstrip(".") for e in _DEFAULTS.SUPPORTED_EXTENSIONS],
    )
with col_tiles:
    tile_files = st.file_uploader(
        "Tile images",
        type=[e.lstrip(".") for e in _DEFAULTS.SUPPORTED_EXTENSIONS],
        accept_multiple_files=True,
    )

if reference_file is not None:
    st.image(reference_file, caption="Reference", width=320)

run_clicked = st.button(
    "Build mosaic", type="primary",
    disabled=reference_file is None or not tile_files,
)

# -- Run ---------------------------------------------------------------
if run_clicked:
    with tempfile.TemporaryDirectory() as tmp:
        tmp_dir = Path(tmp)
        tiles_dir = tmp_dir / "tiles"
        tiles_dir.mkdir()
        for f in tile_files:
            (tiles_dir / Path(f.name).name).write_bytes(f.getvalue())
        ref_path = tmp_dir / f"reference{Path(reference_file.name).suffix}"
        ref_path.write_bytes(reference_file.getvalue())

        cfg = MosaicConfig(
            reference_path=ref_path,
            candidate_dir=tiles_dir,
            grid_side=int(grid_side),
            repeat_cap=int(repeat_cap),
            spacing=int(spacing),
            aspect_tolerance=float(tolerance),
            min_cell_side=int(min_cell_side),
            color_filter=color_filter,
            filter_percent=float(filter_percent),
            skip_unreadable=True,
        )

        status = st.status("Building mosaic ...", expanded=False)

        def _on_stage(stage: Stage) -> None:
            status.update(label=f"Building mosaic ... {stage.value}")

        try:
            result = build_mosaic(cfg, on_stage=_on_stage)
        except MosaicError as exc:
            status.update(label="Failed", state="error")
            st.error(f"{exc.stage or 'pipeline'} failed: {exc}")
            st.stop()

    status.update(label="Done", state="complete")

    grid = result.grid
    relaxed = result.fit.summary()
    st.image(result.canvas, caption=f"Mosaic {grid.canvas_width}x{grid.canvas_height}")

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Tiles", len(result.pool))
    m2.metric("Cell", f"{grid.cell_width}x{grid.cell_height}")
    m3.metric("Relaxed cells", relaxed["spacing"] + relaxed["repeat_cap"])
    m4.metric("Mean ΔE", f"{result.delta_e():.1f}")

    buf = io.BytesIO()
    Image.fromarray(result.canvas).save(buf, format="PNG")
    st.download_button(
        "Download PNG", buf.getvalue(), file_name="mosaic.png", mime="image/png",
    )
