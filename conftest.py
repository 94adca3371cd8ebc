"""
Root conftest for all tests.

Keeps the repository root importable so ``apps``, ``libs`` and ``config``
resolve without installation.
"""

import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))
