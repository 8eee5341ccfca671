# config.py
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Database configuration - prefer explicit DB_* settings
DB_USER = os.getenv("DB_USER", "postgres")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_HOST = os.getenv("DB_HOST")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "postgres")

# Build the database URI
if DB_HOST and DB_PASSWORD:
    SQLALCHEMY_DATABASE_URI = f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
else:
    # Fallback to DATABASE_URL if provided (for deployment platforms).
    # create_app raises when neither is set.
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")

SQLALCHEMY_TRACK_MODIFICATIONS = False

# Application configuration
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-in-production")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
AUTH_TOKEN_TTL_DAYS = int(os.getenv("AUTH_TOKEN_TTL_DAYS", "7"))
CSRF_TOKEN_TTL_MINUTES = int(os.getenv("CSRF_TOKEN_TTL_MINUTES", "120"))

# ESI settings document (flat JSON, five numeric fields)
ESI_SETTINGS_FILE = os.getenv(
    "ESI_SETTINGS_FILE",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "config", "esi_settings.json"),
)

DEFAULT_ESI_SETTINGS = {
    "employee_esi_rate": 0.75,
    "employer_esi_rate": 3.25,
    "esi_threshold": 21000.00,
    "esi_ceiling": 25000.00,
    "medical_benefit_rate": 4.00,
}

# Challan reference prefix and due day of the following month
ESI_CHALLAN_PREFIX = "ESI"
ESI_CHALLAN_DUE_DAY = 21

# Client-side bulk processing defaults
BATCH_SIZE = int(os.getenv("ESI_BATCH_SIZE", "50"))
BATCH_DELAY_SECONDS = float(os.getenv("ESI_BATCH_DELAY_SECONDS", "0.1"))
