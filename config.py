import os

if os.getenv("ENVIRONMENT") != "production":
    from dotenv import load_dotenv
    load_dotenv()


SQLALCHEMY_DATABASE_URL = os.getenv("SQLALCHEMY_DATABASE_URL", "sqlite:///./leetrank.db")
REDIS_CONN_STRING = os.getenv("REDIS_CONN_STRING")

# Shared secret for admin and internal (submission pipeline) routes
X_API_KEY = os.getenv("X_API_KEY")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Rotation
DAILY_CHALLENGE_XP_BONUS = int(os.getenv("DAILY_CHALLENGE_XP_BONUS", "20"))
CHALLENGE_COOLDOWN_DAYS = int(os.getenv("CHALLENGE_COOLDOWN_DAYS", "30"))

# Leaderboard
WEEKLY_WINDOW_DAYS = int(os.getenv("WEEKLY_WINDOW_DAYS", "7"))
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "50"))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))

# Largest value a signed 64-bit INTEGER column (and SQLite) accepts
SQL_INT_MAX = 2**63 - 1
