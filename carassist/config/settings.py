"""Application configuration and settings."""

import os
from pathlib import Path
import yaml
from dotenv import load_dotenv

load_dotenv()

# Paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
REFERENCE_DIR = DATA_DIR / "reference"

# Ensure dirs exist
for d in [DATA_DIR, REFERENCE_DIR]:
    d.mkdir(parents=True, exist_ok=True)

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/carassist.db")

# Overpass API (OpenStreetMap, free, no key required)
OVERPASS_URL = os.getenv("OVERPASS_URL", "https://overpass-api.de/api/interpreter")
GEOCODER_USER_AGENT = os.getenv("GEOCODER_USER_AGENT", "carassist-mechanic-locator")
REQUEST_TIMEOUT = 30

# Mechanic search
DEFAULT_SEARCH_RADIUS = 3000  # meters
MAX_SEARCH_RADIUS = 50000
MECHANIC_RESULT_LIMIT = 10

# Expiry reminders
EXPIRY_WINDOW_DAYS = int(os.getenv("EXPIRY_WINDOW_DAYS", "30"))
URGENT_WINDOW_DAYS = 7

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def load_sources_config() -> dict:
    """Load upstream source configuration from YAML."""
    config_path = Path(__file__).parent / "sources.yaml"
    with open(config_path) as f:
        return yaml.safe_load(f)
