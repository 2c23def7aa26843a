"""Shared configuration for the gift resolution pipeline.

Values are read from the environment once at import time so the command line
tool and the web API behave the same way.  Every client also accepts explicit
overrides, which is what the tests rely on.
"""

from __future__ import annotations

import os

# Catalog API ----------------------------------------------------------------

CATALOG_API_BASE = os.getenv("GIFT_CATALOG_API", "https://api.changes.tg")

# Number of attempts for a single catalog endpoint and the linear backoff step
# in seconds (attempt ``n`` waits ``n * FETCH_BACKOFF_SECONDS``).
FETCH_MAX_ATTEMPTS = int(os.getenv("GIFT_FETCH_ATTEMPTS", "3"))
FETCH_BACKOFF_SECONDS = float(os.getenv("GIFT_FETCH_BACKOFF", "0.8"))

# Page relays ----------------------------------------------------------------

# First-party relay served by ``server.py``.  Third-party relays follow it in
# ``relay.DEFAULT_RELAYS``.
FIRST_PARTY_RELAY = os.getenv("GIFT_RELAY_URL", "http://127.0.0.1:8000/api/proxy")

# Relay bodies at or below this length are treated as error pages.
MIN_PAGE_LENGTH = int(os.getenv("GIFT_MIN_PAGE_LENGTH", "512"))

# Gift pages -----------------------------------------------------------------

GIFT_PAGE_HOST = "t.me"
GIFT_PAGE_BASE = f"https://{GIFT_PAGE_HOST}/nft"

# HTTP -----------------------------------------------------------------------

REQUEST_TIMEOUT = float(os.getenv("GIFT_REQUEST_TIMEOUT", "15"))
USER_AGENT = os.getenv("GIFT_USER_AGENT", "NFT-Gift-Planner/1.0")
