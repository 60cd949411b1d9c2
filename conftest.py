import os

from dotenv import load_dotenv

# Optional overrides (e.g. a Postgres DATABASE_URL) for running the suite
# against a real database
env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

# Defaults must be in place before libs.common.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret")
