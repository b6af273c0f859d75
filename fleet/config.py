"""Settings read from the environment."""

import os
from pathlib import Path

DATA_DIR = Path(os.getenv("FLEET_DATA_DIR", Path.cwd() / "vehicles"))
BOOKING_RETRIES = int(os.getenv("FLEET_BOOKING_RETRIES", "3"))
LOG_FILE = os.getenv("FLEET_LOG_FILE", "logs/fleet.log")
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-in-prod")
PORT = int(os.getenv("PORT", "5001"))
# Seconds to wait for another writer to release a vehicle document
LOCK_TIMEOUT = float(os.getenv("FLEET_LOCK_TIMEOUT", "10"))
