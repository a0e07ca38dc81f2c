#!/usr/bin/env python3
"""Load test script: demonstrates login rate limiting.

RUN:  python scripts/load_test_rate_limit.py

Sends TOTAL_REQUESTS failed logins to POST /auth/login in rapid
succession and prints how many were answered (401) versus throttled
(429).

Prerequisites:
  - The API must be running: uvicorn portal.main:app --port 8000

This is a demonstration, not a load testing tool.  For real load
testing use locust, k6 or wrk.
"""

from __future__ import annotations

import time

import httpx

BASE_URL = "http://localhost:8000"
TOTAL_REQUESTS = 30

# Mirrors LOGIN_LIMIT in portal/services/rate_limiter.py.
LOGIN_CAPACITY = 10
LOGIN_REFILL_PER_S = 1 / 6


def main() -> None:
    print("Login Rate Limit Load Test")
    print("=" * 50)
    print(f"Target: {BASE_URL}/auth/login")
    print(f"Total requests: {TOTAL_REQUESTS}")
    print()

    results: dict[int, int] = {}
    retry_after: str | None = None

    with httpx.Client(base_url=BASE_URL, timeout=10) as client:
        start = time.monotonic()
        for i in range(TOTAL_REQUESTS):
            resp = client.post(
                "/auth/login",
                json={"email": "load-test@example.com", "password": "wrong"},
            )
            results[resp.status_code] = results.get(resp.status_code, 0) + 1
            if resp.status_code == 429:
                retry_after = resp.headers.get("retry-after")

            if (i + 1) % 10 == 0:
                print(f"  Sent {i + 1}/{TOTAL_REQUESTS} requests...")

        elapsed = time.monotonic() - start

    print()
    print(f"Results after {TOTAL_REQUESTS} requests ({elapsed:.2f}s):")
    print("─" * 40)

    answered = results.get(401, 0)
    throttled = results.get(429, 0)
    other = sum(v for k, v in results.items() if k not in (401, 429))

    print(f"  Answered (401): {answered:>4}")
    print(f"  Throttled(429): {throttled:>4}")
    if other:
        print(f"  Other:          {other:>4}")

    print()
    print(f"Token bucket capacity: {LOGIN_CAPACITY}")
    print(f"Refill rate: 1 token every {1 / LOGIN_REFILL_PER_S:.0f}s")
    if retry_after:
        print(f"Last Retry-After: {retry_after}s")
    print()

    if throttled > 0:
        print("Rate limiting is working: the first burst was answered,")
        print("later attempts were throttled.")
    else:
        print("WARNING: No requests were throttled.")
        print("Check that the API is running with the login limiter enabled.")


if __name__ == "__main__":
    main()
