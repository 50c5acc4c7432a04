import os

# Keep test runs out of the operator's master log.
os.environ.setdefault("WPMEDIA_LOG_DISABLED", "1")
