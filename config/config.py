"""Settings shared by every environment, read from the process environment."""

import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "presence_payroll_db"),
}

# Geofence and payroll policy used until a tenant configures its own.
DEFAULT_RADIUS_METERS = int(os.getenv("DEFAULT_RADIUS_METERS", "500"))
DEFAULT_LATENESS_CUTOFF = os.getenv("DEFAULT_LATENESS_CUTOFF", "08:05")
DEFAULT_LATE_FINE = os.getenv("DEFAULT_LATE_FINE", "500")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
