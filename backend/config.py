"""
Centralized config for the ERIS backend.
Loads API keys, storage and business-rule settings from environment; no secrets in code.
"""
import os

from dotenv import load_dotenv

load_dotenv()

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
# Heavier model for the end-of-day analysis
GEMINI_INSIGHTS_MODEL = os.getenv("GEMINI_INSIGHTS_MODEL", "gemini-2.5-pro")

# MongoDB
MONGODB_URI = os.getenv("MONGODB_URI")
MONGODB_DB = os.getenv("MONGODB_DB", "pulsepoint_eris")

# Flask session signing (login state)
SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-secret")

# Business rules
SLA_MINUTES = int(os.getenv("SLA_MINUTES", "15"))
DUPLICATE_WINDOW_HOURS = float(os.getenv("DUPLICATE_WINDOW_HOURS", "2"))
SYNC_DELAY_SECONDS = float(os.getenv("SYNC_DELAY_SECONDS", "2"))

# Nominatim geocoding of logged calls (off unless enabled)
GEOCODE_CALLS = os.getenv("GEOCODE_CALLS", "0").lower() in ("1", "true", "yes")
GEOCODE_AREA = os.getenv("GEOCODE_AREA", "")
