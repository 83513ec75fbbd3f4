import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root (parent of isde_agent/)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

PORTAL_URL = os.getenv("PORTAL_URL", "https://eloket.dienstuitvoering.nl")
MAX_STEP_RETRIES = int(os.getenv("MAX_STEP_RETRIES", "4"))
MAX_RUN_SECONDS = int(os.getenv("MAX_RUN_SECONDS", "1800"))
STATUS_HISTORY = 200

# Pacing delays in seconds, scaled by PACE (0 disables pacing)
PACE = float(os.getenv("PACE", "1.0"))
DELAY_SHORT = 0.5
DELAY_NORMAL = 1.0
DELAY_LONG = 2.0
DELAY_EXTRA_LONG = 3.0

ELEMENT_TIMEOUT = float(os.getenv("ELEMENT_TIMEOUT", "10"))
UPLOAD_TIMEOUT = 30.0
POLL_INTERVAL = 0.1
NAVIGATION_DEBOUNCE_SECONDS = 5.0
LOAD_SETTLE_DELAY = 2.0

RECOVERY_DIR = Path(os.getenv("RECOVERY_DIR", Path.home() / ".isde_agent" / "recovery"))
RECOVERY_MAX_AGE = 60 * 60

MAX_FILE_SIZE = 10 * 1024 * 1024
