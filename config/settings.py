"""
Global Settings
"""
import os
import json
from pathlib import Path

LOG_LEVEL = os.environ.get("QUANT_LOG_LEVEL", "INFO")

# Transient result caches (seconds)
CACHE_TTL_SECONDS = float(os.environ.get("QUANT_CACHE_TTL_SECONDS", "300"))
SENTIMENT_CACHE_TTL_SECONDS = float(os.environ.get("QUANT_SENTIMENT_CACHE_TTL_SECONDS", "3600"))

# Annual risk-free rate and trading calendar used to de-annualize it
RISK_FREE_RATE = float(os.environ.get("QUANT_RISK_FREE_RATE", "0.02"))
TRADING_DAYS = int(os.environ.get("QUANT_TRADING_DAYS", "252"))


def load_risk_thresholds():
    """Load default risk alert thresholds from config file."""
    thresholds_path = Path(__file__).parent / "risk_thresholds.json"
    with open(thresholds_path, "r") as f:
        return json.load(f)
