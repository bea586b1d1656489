import os

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg2://postgres:postgres@db:5432/box_social")
RUN_MIGRATIONS = os.getenv("RUN_MIGRATIONS", "true").lower() == "true"
MIGRATIONS_DIR = os.getenv("MIGRATIONS_DIR", "").strip()
DB_CONNECT_ATTEMPTS = int(os.getenv("DB_CONNECT_ATTEMPTS", "20"))
DB_CONNECT_DELAY_SECONDS = float(os.getenv("DB_CONNECT_DELAY_SECONDS", "1.5"))
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"

JWT_SECRET = os.getenv("JWT_SECRET", "")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "60"))

DEFAULT_TENANT_TIMEZONE = os.getenv("DEFAULT_TENANT_TIMEZONE", "America/Sao_Paulo")

CANDIDATE_LIMIT_DEFAULT = int(os.getenv("CANDIDATE_LIMIT_DEFAULT", "10"))
CANDIDATE_LIMIT_MAX = int(os.getenv("CANDIDATE_LIMIT_MAX", "50"))
LEADERBOARD_LIMIT_DEFAULT = int(os.getenv("LEADERBOARD_LIMIT_DEFAULT", "10"))
LEADERBOARD_LIMIT_MAX = int(os.getenv("LEADERBOARD_LIMIT_MAX", "100"))
TOP_CALORIES_LIMIT = int(os.getenv("TOP_CALORIES_LIMIT", "5"))

RL_MATCH_ACTION_LIMIT = int(os.getenv("RL_MATCH_ACTION_LIMIT", "120"))
RL_FRIEND_REQUEST_LIMIT = int(os.getenv("RL_FRIEND_REQUEST_LIMIT", "60"))
RL_CHALLENGE_CREATE_LIMIT = int(os.getenv("RL_CHALLENGE_CREATE_LIMIT", "30"))
RL_CHALLENGE_RESPOND_LIMIT = int(os.getenv("RL_CHALLENGE_RESPOND_LIMIT", "100"))
RL_CHALLENGE_RESULT_LIMIT = int(os.getenv("RL_CHALLENGE_RESULT_LIMIT", "100"))
RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",") if o.strip()]
