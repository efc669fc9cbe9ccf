from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Tests must never reach Gemini with a developer's real key from .env
os.environ["GEMINI_API_KEY"] = "test-gemini-api-key"
