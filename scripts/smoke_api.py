#!/usr/bin/env python3
"""Smoke test for a running schedule API (start it with BOOKING_GATEWAY=mock)."""

import sys

import httpx


BASE_URL = "http://127.0.0.1:8001/api/v1/schedule"
VIEW = {"start": "2025-10-02T00:00:00Z", "end": "2025-10-03T00:00:00Z"}


def _call(method: str, path: str, **kwargs) -> dict | None:
    print(f"\n{method} {path}")
    try:
        response = httpx.request(method, f"{BASE_URL}{path}", timeout=30.0, **kwargs)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        print(f"❌ HTTP Error: {e.response.status_code}")
        print(f"Response: {e.response.text}")
        return None
    except httpx.HTTPError as e:
        print(f"❌ Error: {e}")
        return None

    data = response.json()
    session = data.get("session")
    if not session:
        print("✅ OK")
        return data
    print(f"✅ draft={session['is_draft_mode']} modified={session['modified_event_ids']}")
    for a in session["appointments"]:
        marker = " (conflict)" if a["is_conflicting"] else ""
        print(f"  {a['id']}: {a['client_name']} {a['start_time']} -> {a['end_time']} @ {a['room']}{marker}")
    return data


def main():
    print("\n🚀 Testing Schedule API\n")

    try:
        httpx.get(BASE_URL.replace("/api/v1/schedule", "/health"), timeout=5.0)
        print("✅ Server is running")
    except httpx.HTTPError:
        print("❌ Server is not running!")
        print("   Please start it with: BOOKING_GATEWAY=mock uvicorn schedule_draft.main:app --port 8001")
        sys.exit(1)

    _call("GET", "/events", params=VIEW)
    _call("POST", "/conflicts/evaluate")
    explanation = _call("GET", "/appointments/5/explanation")
    if explanation:
        print(f"  explanation: {explanation['explanation']!r}")

    _call("POST", "/draft")
    _call(
        "PATCH",
        "/appointments/6/times",
        json={"start_time": "2025-10-02T12:00:00-02:00", "end_time": "2025-10-02T13:00:00-02:00"},
    )
    _call("POST", "/draft/reset")

    print("\n" + "=" * 60)
    print("✅ Smoke run complete!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
