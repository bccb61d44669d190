"""Pytest configuration shared by all test suites"""

import os
import sys
from pathlib import Path

# Add project root to path for flight_search imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Tests never talk to a real database unless they ask for it
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_FILE", str(project_root / "logs" / "flight-search-tests.log"))
