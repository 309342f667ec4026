import os
import tempfile

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "org_db_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

UPLOAD_FOLDER = os.path.join(tempfile.gettempdir(), "org_management_uploads")
MAX_CONTENT_LENGTH = 2 * 1024 * 1024

AUTO_INIT_DB = False
AUTO_SEED_DB = False
