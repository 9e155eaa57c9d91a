"""Static configuration for deadscope.

All user-editable settings (liveness service, DNS, concurrency, logging)
live in a single JSON file for quick edits without touching Python. The
file is optional; every key has a default.
"""

import json
import os

from dotenv import load_dotenv

from core.config import DEFAULT_CHUNK_SIZE, DEFAULT_CONCURRENCY, DEFAULT_MAX_ATTEMPTS

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# .env may point DEADSCOPE_CONFIG at another file.
load_dotenv()

CONFIG_PATH = os.getenv("DEADSCOPE_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def load_json_config(path: str) -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(path):
        return {}

    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = load_json_config(CONFIG_PATH)

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Liveness web service.
# - URLFILTER_CHUNK_SIZE: domains per request
# - URLFILTER_MAX_ATTEMPTS: total attempts per chunk, including the first one
# - URLFILTER_REQUEST_TIMEOUT: seconds, None means no wall-clock limit
_urlfilter = _CONFIG.get("urlfilter", {})
URLFILTER_ENDPOINT = _urlfilter.get("endpoint", "https://urlfilter.adtidy.org/v2/checkDomains")
URLFILTER_CHUNK_SIZE = int(_urlfilter.get("chunk_size", DEFAULT_CHUNK_SIZE))
URLFILTER_MAX_ATTEMPTS = int(_urlfilter.get("max_attempts", DEFAULT_MAX_ATTEMPTS))
URLFILTER_REQUEST_TIMEOUT = _urlfilter.get("request_timeout")

# DNS used for the double-check and for resolving the service host.
# An empty nameserver list falls back to the system resolver configuration.
_dns = _CONFIG.get("dns", {})
DNS_NAMESERVERS = list(_dns.get("nameservers", ["8.8.8.8"]))
DNS_TIMEOUT = float(_dns.get("timeout", 5))

# Rules processed in parallel per file; files are always processed one by one.
_processing = _CONFIG.get("processing", {})
CONCURRENCY = int(_processing.get("concurrency", DEFAULT_CONCURRENCY))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
