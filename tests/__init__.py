"""
Test package for SmartPark

Unit tests live in tests/unit, integration tests in tests/integration.
"""

import sys
from pathlib import Path

# Add the src directory to the Python path
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)
