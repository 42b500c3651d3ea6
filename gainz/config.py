import os

DATABASE_URL = os.environ.get("GAINZ_DATABASE_URL", "sqlite:///gainz.db")

SUPABASE_URL = os.environ.get("GAINZ_SUPABASE_URL", "http://localhost:54321")
SUPABASE_ANON_KEY = os.environ.get("GAINZ_SUPABASE_ANON_KEY", "")

# Sync queue
SYNC_MAX_RETRIES = 3
SYNC_RETRY_DELAY = float(os.environ.get("GAINZ_SYNC_RETRY_DELAY", "2.0"))  # seconds
SYNC_BATCH_SIZE = 3
SYNC_MAX_FAILURES = 3

DEFAULT_REST_SECONDS = 90
