"""Manual check against a running server: the second call must reuse the connection."""
import sys

import requests

BASE = "http://localhost:5000/api"

health = requests.get(f"{BASE}/health", timeout=10).json()
print(f"mongo_connected = {health.get('mongo_connected')}")
print(f"connection      = {health.get('connection')}")
print()

for attempt in (1, 2):
    r = requests.get(f"{BASE}/connection", timeout=30)
    print(f"[{attempt}] HTTP {r.status_code} {r.json()}")
    if r.status_code != 200:
        sys.exit(1)
