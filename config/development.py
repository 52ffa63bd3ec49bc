import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "tutoring_db"),
}

# Check-in trust thresholds (meters). MAX_DISTANCE_METERS must not exceed FRAUD_RADIUS_METERS.
FRAUD_RADIUS_METERS = float(os.getenv("FRAUD_RADIUS_METERS", "30"))
MAX_DISTANCE_METERS = float(os.getenv("MAX_DISTANCE_METERS", "20"))
QR_TOKEN_VALIDITY_HOURS = int(os.getenv("QR_TOKEN_VALIDITY_HOURS", "24"))

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

# "mysql" or "memory" (process-local, for runs without a database)
SESSION_STORE = os.getenv("SESSION_STORE", "mysql").lower()
