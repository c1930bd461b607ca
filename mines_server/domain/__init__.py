"""Domain layer (pure logic).

- Keep game rules, hashing and pot calculations here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no Redis.
- Prefer deterministic functions (time/threshold passed in as arguments).
"""
