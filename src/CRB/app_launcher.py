"""
Application launcher for Streamlit UI.

Module Input:
    - Command-line invocation via console script entry point

Module Output:
    - Launches Streamlit server with the claim validation UI
    - Exits with Streamlit's exit code

Usage:
    $ crb-app

    Or directly:
    $ python -m CRB.app_launcher
"""

import sys
from pathlib import Path


def main():
    """
    Launch the Streamlit application.

    Raises:
        SystemExit: If the Streamlit app is missing or exits
    """
    import streamlit.web.cli as stcli

    app_path = Path(__file__).parent / "ui" / "streamlit_app.py"

    if not app_path.exists():
        print(f"Error: Streamlit app not found at {app_path}", file=sys.stderr)
        sys.exit(1)

    print(f"Launching Claims RAG Bot UI from {app_path}")

    sys.argv = [
        "streamlit",
        "run",
        str(app_path),
        "--server.port=8501",
        "--server.headless=true"
    ]

    sys.exit(stcli.main())


if __name__ == "__main__":
    main()
