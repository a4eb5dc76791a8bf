import os
from dotenv import load_dotenv

load_dotenv()

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./timemanager.db")

ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET")
REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET")
if not ACCESS_TOKEN_SECRET or not REFRESH_TOKEN_SECRET:
    raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be set in environment variables.")
if ACCESS_TOKEN_SECRET == REFRESH_TOKEN_SECRET:
    raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be different.")

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 15
REFRESH_TOKEN_EXPIRE_DAYS = 7

REFRESH_COOKIE_NAME = "refreshToken"
REFRESH_COOKIE_PATH = "/auth"
REFRESH_COOKIE_SAMESITE = "lax"
REFRESH_COOKIE_SECURE = ENVIRONMENT == "production"
REFRESH_COOKIE_MAX_AGE = REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60

# (max attempts, window in seconds) per client IP
if ENVIRONMENT == "test":
    LOGIN_RATE_LIMIT = (50, 10)
    REFRESH_RATE_LIMIT = (50, 10)
else:
    LOGIN_RATE_LIMIT = (5, 15 * 60)
    REFRESH_RATE_LIMIT = (10, 15 * 60)

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if origin.strip()]
