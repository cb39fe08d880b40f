#!/usr/bin/env python3
"""
End-to-end demo script for the contract date alert engine.

Prerequisites:
    1. API, worker, Postgres and Temporal running
    2. A contract row with contract_text (and its user) already in the database
    3. OPENAI_API_KEY and RESEND_API_KEY set in the environment of the worker

Usage:
    python scripts/e2e_demo.py --contract-id <uuid>

    # Output the final date list as raw JSON:
    python scripts/e2e_demo.py --contract-id <uuid> --json
"""

import argparse
import json
import sys
import time
from datetime import datetime, timedelta, timezone

import httpx

# Configuration
API_BASE = "http://localhost:8000"
POLL_INTERVAL = 3  # seconds
MAX_WAIT = 120  # seconds


def check_health(client: httpx.Client) -> bool:
    """Check if API is healthy."""
    try:
        resp = client.get(f"{API_BASE}/health")
        return resp.status_code == 200
    except httpx.RequestError:
        return False


def check_readiness(client: httpx.Client) -> dict:
    """Check readiness of all dependencies."""
    try:
        resp = client.get(f"{API_BASE}/health/ready")
        return resp.json()
    except httpx.RequestError as e:
        return {"error": str(e)}


def list_dates(client: httpx.Client, contract_id: str) -> list:
    resp = client.get(f"{API_BASE}/api/contracts/{contract_id}/dates")
    resp.raise_for_status()
    return resp.json()


def add_date(client: httpx.Client, contract_id: str, days_ahead: int) -> dict:
    """Add a hand-entered end date ``days_ahead`` days from now."""
    when = datetime.now(timezone.utc) + timedelta(days=days_ahead)
    resp = client.post(
        f"{API_BASE}/api/contracts/{contract_id}/dates",
        json={
            "date_type": "end_date",
            "date": when.isoformat(),
            "description": "Demo end date",
        },
    )
    resp.raise_for_status()
    return resp.json()


def force_alert(client: httpx.Client, contract_id: str, date_id: str, offset_days: int) -> dict:
    resp = client.post(
        f"{API_BASE}/api/admin/alerts/force",
        json={"contract_id": contract_id, "date_id": date_id, "offset_days": offset_days},
    )
    resp.raise_for_status()
    return resp.json()


def poll_until(client: httpx.Client, contract_id: str, predicate, max_wait: int = MAX_WAIT) -> list:
    """Poll the date list until ``predicate(dates)`` holds or time runs out."""
    start = time.time()
    while time.time() - start < max_wait:
        dates = list_dates(client, contract_id)
        if predicate(dates):
            return dates
        elapsed = int(time.time() - start)
        print(f"  Waiting... ({elapsed}s elapsed)", end="\r")
        time.sleep(POLL_INTERVAL)
    return []


def print_dates(dates: list) -> None:
    """Pretty print contract dates with their alerts."""
    print("\n" + "=" * 60)
    print("CONTRACT DATES")
    print("=" * 60)
    for d in dates:
        state = "active" if d["is_active"] else "inactive"
        print(f"\n{d['date'][:10]}  {d['date_type']}  ({state})")
        print(f"  {d['description']}")
        for a in d.get("alerts", []):
            sent = f"sent {a['dispatched_at']}" if a["dispatched"] else "pending"
            enabled = "" if a["is_active"] else " [disabled]"
            print(f"    - {a['offset_days']:>2}d before: {a['scheduled_at']} {sent}{enabled}")
    print("\n" + "=" * 60)


def main():
    parser = argparse.ArgumentParser(description="E2E demo for contract date alerts")
    parser.add_argument("--contract-id", required=True, help="Existing contract UUID")
    parser.add_argument("--json", action="store_true", help="Output raw JSON")
    args = parser.parse_args()
    contract_id = args.contract_id

    print("=" * 60)
    print("CONTRACT DATE ALERTS - E2E DEMO")
    print("=" * 60)

    with httpx.Client(timeout=30.0) as client:
        # Step 1: Health check
        print("\n[1/6] Checking API health...")
        if not check_health(client):
            print("  Error: API is not responding.")
            sys.exit(1)
        print("  API is healthy")

        # Step 2: Readiness check
        print("\n[2/6] Checking service readiness...")
        readiness = check_readiness(client)
        if "error" in readiness:
            print(f"  Error: {readiness['error']}")
            sys.exit(1)
        for service, status in readiness.get("checks", {}).items():
            icon = "OK" if status == "ok" else "FAIL"
            print(f"  {service}: {icon}")
        if readiness.get("status") != "ok":
            print("  Error: Not all services are ready")
            sys.exit(1)

        # Step 3: Extract dates
        print(f"\n[3/6] Starting date extraction for contract {contract_id[:8]}...")
        resp = client.post(f"{API_BASE}/api/admin/alerts/process/{contract_id}")
        if resp.status_code != 202:
            print(f"  Error: {resp.text}")
            sys.exit(1)
        dates = poll_until(client, contract_id, lambda ds: len(ds) > 0)
        print(f"  {len(dates)} dates stored              ")

        # Step 4: Add a date of our own and force an overdue reminder on it
        print("\n[4/6] Adding a demo date 10 days out and forcing its 14-day reminder...")
        try:
            demo_date = add_date(client, contract_id, days_ahead=10)
            alert = force_alert(client, contract_id, demo_date["id"], offset_days=14)
            print(f"  Alert {alert['id'][:8]} scheduled at {alert['scheduled_at']} (already due)")
        except httpx.HTTPStatusError as e:
            print(f"  Error: {e.response.text}")
            sys.exit(1)

        # Step 5: Dispatch now and wait for the alert to be marked sent
        print("\n[5/6] Triggering dispatcher...")
        client.post(f"{API_BASE}/api/admin/alerts/check-now").raise_for_status()

        def demo_alert_sent(ds):
            return any(
                a["id"] == alert["id"] and a["dispatched"]
                for d in ds
                for a in d.get("alerts", [])
            )

        dates = poll_until(client, contract_id, demo_alert_sent)
        if not dates:
            print("  Timed out waiting for dispatch (check RESEND_API_KEY on the worker)")
            sys.exit(1)
        print("  Alert sent!                        ")

        # Step 6: Stats
        print("\n[6/6] Alert statistics...")
        stats = client.get(f"{API_BASE}/api/admin/alerts/stats").json()
        for key, value in stats.items():
            print(f"  {key.replace('_', ' ')}: {value}")

    if args.json:
        print(json.dumps(dates, indent=2, default=str))
    else:
        print_dates(dates)

    sys.exit(0)


if __name__ == "__main__":
    main()
