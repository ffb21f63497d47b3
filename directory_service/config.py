import os

SERVICE_NAME = "room-directory"

# "memory" (default, reseeded on every start) or "sql"
ROOM_STORE_BACKEND = os.getenv("ROOM_STORE_BACKEND", "memory")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./room_directory.db")

# --- Tokens ---
SIGNED_TOKENS = os.getenv("SIGNED_TOKENS") == "1"
SECRET_KEY = os.getenv("SECRET_KEY", "room-directory-dev-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# --- Login rate limiting ---
LOGIN_RATE_LIMIT = int(os.getenv("LOGIN_RATE_LIMIT", "10"))
LOGIN_RATE_WINDOW_SECONDS = int(os.getenv("LOGIN_RATE_WINDOW_SECONDS", "60"))

ROOMS_CACHE_TTL_SECONDS = int(os.getenv("ROOMS_CACHE_TTL_SECONDS", "60"))

PING_MESSAGE = os.getenv("PING_MESSAGE", "ping")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
