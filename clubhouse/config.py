import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./teesheet.db")

# Club-local calendar (all teesheet dates are in this timezone)
CLUB_TIMEZONE = os.getenv("CLUB_TIMEZONE", "America/Vancouver")

# Capacity used when a REGULAR config does not set max_members_per_block
DEFAULT_MAX_MEMBERS_PER_BLOCK = int(os.getenv("DEFAULT_MAX_MEMBERS_PER_BLOCK", "4"))

# Redis is optional - without it rate limiting stays in-process
REDIS_URL = os.getenv("REDIS_URL")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
BOOKING_RATE_LIMIT = int(os.getenv("BOOKING_RATE_LIMIT", "30"))
BOOKING_RATE_WINDOW_SECONDS = int(os.getenv("BOOKING_RATE_WINDOW_SECONDS", "60"))

# Bounded retries for idempotent reads only (never for multi-row writes)
READ_RETRY_ATTEMPTS = int(os.getenv("READ_RETRY_ATTEMPTS", "3"))

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")
