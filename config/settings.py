"""
config/settings.py
Central configuration: reads from environment variables and .env file.
"""
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings:

    def __init__(self):
        self._load()

    def _load(self):
        import os
        env_file = BASE_DIR / ".env"
        if env_file.exists():
            for line in env_file.read_text().splitlines():
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, _, val = line.partition("=")
                    os.environ.setdefault(key.strip(), val.strip())

        self.rate_snapshot_path = os.environ.get(
            "RATE_SNAPSHOT_PATH", str(BASE_DIR / "data" / "rates.json")
        )

        self.api_host    = os.environ.get("API_HOST", "0.0.0.0")
        self.api_port    = int(os.environ.get("API_PORT", "8000"))
        self.api_title   = "Freight Cost Calculation API"
        self.api_version = "1.0.0"

        self.metrics_port    = int(os.environ.get("METRICS_PORT", "9090"))
        self.metrics_enabled = os.environ.get("METRICS_ENABLED", "false").lower() in ("1", "true", "yes")
        self.log_level       = os.environ.get("LOG_LEVEL", "INFO")

        # Display only; every rate table is quoted in one currency
        self.currency = os.environ.get("CURRENCY", "USD")

        self.expiring_within_days = int(os.environ.get("EXPIRING_WITHIN_DAYS", "7"))

        # Above this a request is still calculated but flagged for review
        self.max_reasonable_weight_kg = 100_000.0


settings = Settings()
