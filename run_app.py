#!/usr/bin/env python3
"""Launcher for the Finance Tracker.

Starts Streamlit with the finance_tracker directory as the app root so the
pages/ subdirectory is discovered automatically.
"""

import os
import subprocess
import sys
from pathlib import Path

project_root = Path(__file__).parent.resolve()
app_dir = project_root / "finance_tracker"

if __name__ == "__main__":
    os.chdir(app_dir)
    sys.path.insert(0, str(project_root))
    subprocess.run([sys.executable, "-m", "streamlit", "run", "Home.py", *sys.argv[1:]])
