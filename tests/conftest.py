import os

# Settings are read at import time; point everything at throwaway backends first.
os.environ.setdefault("TIMEPAY_DATABASE_URL", "sqlite://")
os.environ.setdefault("TIMEPAY_AUTO_CREATE_SCHEMA", "false")
os.environ.setdefault("TIMEPAY_LOG_JSON", "false")
