"""
Configuration for CODiS Station Data Retrieval

Simple configuration without external dependencies (no Pydantic).
Values can be overridden from a .env file or the environment.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Get project root (3 levels up: station_data -> codis_orchestration -> project_root)
PROJECT_ROOT = Path(__file__).parent.parent.parent.absolute()

# Load environment variables (an existing environment wins over .env)
load_dotenv(PROJECT_ROOT / ".env")

# API Configuration
CODIS_BASE_URL = os.getenv("CODIS_BASE_URL", "https://codis.cwa.gov.tw/api").rstrip("/")
STATION_DATA_URL = f"{CODIS_BASE_URL}/station"
STATION_LIST_URL = f"{CODIS_BASE_URL}/station_list"

# Fixed form parameters for the monthly report query
REPORT_TYPE = "report_month"
STATION_TYPE = "auto_C0"
REQUEST_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Automatic stations are the only population the report endpoint serves
AUTOMATIC_STATION_PREFIX = "C0"

# Chunk Settings - the API refuses look-backs longer than 366 days
MAX_CHUNK_DAYS = 366

# Retry Configuration
MAX_RETRIES = int(os.getenv("CODIS_MAX_RETRIES", "3"))  # retries after the first attempt
RETRY_INITIAL_WAIT = float(os.getenv("CODIS_RETRY_INITIAL_WAIT", "1"))  # seconds
RETRY_MULTIPLIER = 2  # exponential backoff multiplier
RETRY_MAX_WAIT = 60  # seconds
REQUEST_TIMEOUT = float(os.getenv("CODIS_REQUEST_TIMEOUT", "60"))  # seconds per request

# Paths
OUTPUT_DIR = Path(os.getenv("CODIS_OUTPUT_DIR", "."))
LOGS_DIR = Path(os.getenv("CODIS_LOGS_DIR", str(PROJECT_ROOT / "logs")))

# Logging Configuration
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
