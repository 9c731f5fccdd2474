from pathlib import Path


# --- Versions ---
ENGINE_VERSION = "0.3.0"

# --- Environment ---
ENV_STORE_BACKEND = "PROGRESS_GUARD_STORE_BACKEND"
ENV_DATA_DIR = "PROGRESS_GUARD_DATA_DIR"
ENV_DB_PATH = "PROGRESS_GUARD_DB_PATH"
ENV_ADMIN_PASSWORD = "PROGRESS_GUARD_ADMIN_PASSWORD"
ENV_DEV_CORS = "PROGRESS_GUARD_DEV_CORS"
ENV_LOG_LEVEL = "PROGRESS_GUARD_LOG_LEVEL"

# --- Store backends ---
STORE_BACKEND_JSON = "json"
STORE_BACKEND_SQLITE = "sqlite"
STORE_BACKEND_MEMORY = "memory"
STORE_BACKENDS = (STORE_BACKEND_JSON, STORE_BACKEND_SQLITE, STORE_BACKEND_MEMORY)
DEFAULT_STORE_BACKEND = STORE_BACKEND_JSON

# --- Paths (local files) ---
REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DATA_DIR_REL = Path("logs")
DEFAULT_DB_REL_PATH = Path("data") / "progress.sqlite"

# --- Logging ---
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# --- HTTP ---
DEFAULT_SERVER_PORT = 3000
ADMIN_PASSWORD_HEADER = "X-Admin-Password"
