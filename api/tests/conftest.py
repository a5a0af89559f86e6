import os

# Tests never export spans; set before the app module reads settings.
os.environ.setdefault("JOBLY_OTEL_ENABLED", "false")
