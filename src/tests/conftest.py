import os
import tempfile

# point the app at a throwaway database before engine.db is imported
_DB_DIR = tempfile.mkdtemp(prefix="codeguard_tests_")
os.environ["CODEGUARD_DATABASE_URL"] = "sqlite:///" + os.path.join(_DB_DIR, "test_jobs.db")
