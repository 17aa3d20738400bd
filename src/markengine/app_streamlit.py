#!/usr/bin/env python3
import json
import tempfile
from pathlib import Path

import streamlit as st

from markengine.engine import Engine
from markengine.engine_defaults import DEFAULTS, apply_overrides
from markengine.output import Outcome
from markengine.scanned_image import scans_from_paths
from markengine.template import load_template
from markengine.visualize_core import overlay_template

st.set_page_config(page_title="markengine", layout="wide")
st.title("markengine")

# ---------- helpers ----------
def _save_upload_to_tmp(upload) -> str:
    """
    Write a Streamlit UploadedFile to a temp file, preserving its extension.
    Return the absolute path.
    """
    if upload is None:
        return ""
    suffix = Path(upload.name).suffix or ""
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        tmp.write(upload.getbuffer())
        return str(Path(tmp.name).resolve())

# ---------- UI ----------
tab1, tab2 = st.tabs(["Template Visualizer", "Apply Template"])

# ============ Visualize ============
with tab1:
    st.header("Check how your template's fields land on a registered scan")
    scan_upload = st.file_uploader("Scan (PDF/image)", type=["pdf", "png", "jpg", "jpeg", "bmp", "tif", "tiff"], key="viz_scan")
    tpl_upload = st.file_uploader("Template (YAML or JSON)", type=["yaml", "yml", "json"], key="viz_tpl")
    label_fields = st.checkbox("Label fields", value=True)

    if st.button("Draw overlay"):
        if not scan_upload or not tpl_upload:
            st.error("Provide both a scan and a template.")
        else:
            try:
                scan_path = _save_upload_to_tmp(scan_upload)
                tpl_path = _save_upload_to_tmp(tpl_upload)
                out_path = Path(tempfile.gettempdir()) / "template_overlay.png"
                overlay_template(scan_path, tpl_path, str(out_path), label_fields=label_fields)
                st.image(str(out_path), use_container_width=True)
                st.download_button("template_overlay.png", out_path.read_bytes(), file_name="template_overlay.png")
            except Exception as e:
                st.error(f"Visualization failed: {e}")

# ============ Apply ============
with tab2:
    st.header("Apply a template to scanned pages")
    scan_uploads = st.file_uploader("Scans (PDF/images)", type=["pdf", "png", "jpg", "jpeg", "bmp", "tif", "tiff"],
                                    accept_multiple_files=True, key="apply_scans")
    tpl_upload = st.file_uploader("Template (YAML or JSON)", type=["yaml", "yml", "json"], key="apply_tpl")
    params = st.text_input("Parameters (comma separated)", "")
    threshold = st.number_input("Threshold", value=DEFAULTS.threshold, min_value=0, max_value=255)
    min_area = st.number_input("Minimum blob area", value=DEFAULTS.min_blob_area, min_value=1)

    if st.button("Apply"):
        if not (scan_uploads and tpl_upload):
            st.error("Provide scans and a template.")
        else:
            try:
                tpl = load_template(_save_upload_to_tmp(tpl_upload))
                paths = [_save_upload_to_tmp(u) for u in scan_uploads]
                parameters = [p.strip() for p in params.split(",") if p.strip()]
                opts = apply_overrides(threshold=int(threshold), min_blob_area=int(min_area))
                outputs = Engine(opts).apply_many(tpl, scans_from_paths(paths, tpl.name, parameters))

                for o in outputs:
                    if o.outcome is Outcome.SUCCESS:
                        st.success(f"{o.id}: {len(o.details)} answer record(s)")
                    else:
                        st.error(f"{o.id}: {o.error_message}")
                payload = json.dumps([o.to_dict() for o in outputs], indent=2)
                st.json(payload)
                st.download_button("results.json", payload, file_name="results.json")
            except Exception as e:
                st.error(f"Apply failed: {e}")
