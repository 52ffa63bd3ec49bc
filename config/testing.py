import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "tutoring_test_db"),
}

FRAUD_RADIUS_METERS = 30.0
MAX_DISTANCE_METERS = 20.0
QR_TOKEN_VALIDITY_HOURS = 24

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

# "mysql" or "memory" (process-local, for runs without a database)
SESSION_STORE = os.getenv("SESSION_STORE", "mysql").lower()
