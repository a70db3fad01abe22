import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Deterministic env before any app module reads it.
os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ["ANALYTICS_ENABLED"] = "0"
os.environ["API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["AI_PROVIDER_ORDER"] = "openai,gemini"
os.environ["AI_PROBE_ON_STARTUP"] = "0"
os.environ["AI_REPROBE_INTERVAL_S"] = "0"
