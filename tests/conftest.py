"""Shared test setup.

The engine and settings are built at import time, so the environment has
to point at a throwaway database before anything under src/ is imported.
"""

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="pt-tests-")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/test.db"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["FINNHUB_API_KEY"] = ""
os.environ["BACKUP_DIR"] = os.path.join(_TMP_DIR, "backups")
