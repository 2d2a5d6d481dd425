import os

# =====================================
# Global configuration for the competition backend
# =====================================

# TEST_MODE:
# When True, services print extra debug lines.
# Example uses:
#   - Per-player fold details during a disciplinary rebuild
#   - Per-row output when standings are materialized
TEST_MODE = os.getenv("COMPETITION_TEST_MODE", "false").lower() in ("1", "true", "yes")

# --- Database ---
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DB_PATH = os.path.join(BASE_DIR, "competition.db")
DATABASE_URL = os.getenv("COMPETITION_DATABASE_URL", f"sqlite:///{DB_PATH}")

# Echo SQL statements (noisy, off unless asked for)
SQL_ECHO = os.getenv("COMPETITION_SQL_ECHO", "false").lower() in ("1", "true", "yes")

# AUTO_SEED:
# Seed a demo season on startup when the database has no seasons yet.
AUTO_SEED = os.getenv("COMPETITION_AUTO_SEED", "true").lower() in ("1", "true", "yes")
