import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


# Environment variables for ProductSafety-API
PORT = int(os.getenv("PORT", 8000))

# db url, sqlite file by default so the service boots without setup
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./product_safety.db")

# API key and model name for the LLM (google ai studio)
# when the key is missing the AI features run in disabled mode
LLM_API_KEY = os.getenv("LLM_API_KEY", None)
LLM_MODEL_NAME = os.getenv("LLM_MODEL_NAME", "gemini-2.0-flash")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", 0.2))

# langsmith reads LANGSMITH_TRACING, LANGSMITH_API_KEY and LANGSMITH_PROJECT from the environment

# external product catalogs
OFF_BASE_URL = os.getenv("OFF_BASE_URL", "https://world.openfoodfacts.org")
OBF_BASE_URL = os.getenv("OBF_BASE_URL", "https://world.openbeautyfacts.org")
UPCITEMDB_BASE_URL = os.getenv("UPCITEMDB_BASE_URL", "https://api.upcitemdb.com/prod/trial/lookup")
HTTP_USER_AGENT = os.getenv("HTTP_USER_AGENT", "ProductSafetyAPI/0.1 (+https://github.com)")

# Timeouts in seconds
SOURCE_TIMEOUT_SECONDS = float(os.getenv("SOURCE_TIMEOUT_SECONDS", 5))
SEARCH_TIMEOUT_SECONDS = float(os.getenv("SEARCH_TIMEOUT_SECONDS", 8))
UPC_TIMEOUT_SECONDS = float(os.getenv("UPC_TIMEOUT_SECONDS", 5))

# name search repair
MAX_SEARCH_QUERY_LENGTH = int(os.getenv("MAX_SEARCH_QUERY_LENGTH", 60))

# logging, set LOG_FILE to an empty string to disable the file handler
LOG_FILE = os.getenv("LOG_FILE", "product_safety.log")
LOG_FILE_MAX_BYTES = int(os.getenv("LOG_FILE_MAX_BYTES", 5 * 1024 * 1024))
LOG_FILE_BACKUPS = int(os.getenv("LOG_FILE_BACKUPS", 3))
LOG_CONSOLE_LEVEL = os.getenv("LOG_CONSOLE_LEVEL", "ERROR")
