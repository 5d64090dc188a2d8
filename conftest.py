# conftest.py
# Pytest configuration for the KeliLink test environment
#
# Sets test-mode environment flags before any api module is imported, so the
# in-memory Firestore/Auth mocks are used and no external service is called.
#
# @see: api/config.py - Reads these flags at import time
# @note: KELILINK_TEST_MODE=true disables Gemini calls

import os

os.environ.setdefault("KELILINK_TEST_MODE", "true")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("USE_REAL_FIREBASE", "false")
os.environ.setdefault("JWT_SECRET", "test-secret-do-not-use-in-production")
os.environ.pop("MOCK_DB_FILE", None)
