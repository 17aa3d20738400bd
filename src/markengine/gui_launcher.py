# src/markengine/gui_launcher.py
import sys
from importlib import resources
from typing import Sequence


def launch(streamlit_args: Sequence[str] = ()) -> int:
    """Serve the bundled Streamlit app in this process; returns streamlit's exit code."""
    from streamlit.web import cli as stcli
    script = str(resources.files("markengine") / "app_streamlit.py")
    sys.argv = ["streamlit", "run", script, *streamlit_args]
    try:
        stcli.main()
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0
    return 0


def main() -> None:
    """`markengine-gui [streamlit options...]`"""
    raise SystemExit(launch(sys.argv[1:]))
