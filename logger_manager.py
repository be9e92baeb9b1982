import logging
from logging.handlers import RotatingFileHandler

from env import LOG_CONSOLE_LEVEL, LOG_FILE, LOG_FILE_BACKUPS, LOG_FILE_MAX_BYTES

# Configure the service logger
logger = logging.getLogger("product_safety")
logger.setLevel(logging.DEBUG)
logger.propagate = False

formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s - %(pathname)s:%(lineno)d")

# uvicorn --reload imports the app twice
if not logger.handlers:
    # everything from debug up goes to the rotating file
    if LOG_FILE:
        file_handler = RotatingFileHandler(LOG_FILE, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, LOG_CONSOLE_LEVEL.upper(), logging.ERROR))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

# stacklevel=2 so the record points at the caller, not at this module
def log_debug(message: str):
    logger.debug(message, stacklevel=2)

def log_info(message: str):
    logger.info(message, stacklevel=2)

def log_warning(message: str, exc: Exception = None):
    # stack traces for warnings only when an exception is passed in
    logger.warning(message, exc_info=exc, stacklevel=2)

def log_error(message: str, exc: Exception = None):
    logger.error(message, exc_info=exc, stacklevel=2)
