"""
Test package for the EcoCharge engine

Puts src/ on the import path so the suite runs from a checkout without
installing the package.
"""

import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parent.parent / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))
