#!/usr/bin/env python3
"""
Walk a booking through its full lifecycle against a running API.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_booking_lifecycle.py --booking-id <UUID> \
        --host-token <JWT> --renter-token <JWT> --internal-key <KEY>

Flow:
    1. Renter tries to approve their own request (expect 403)
    2. Host approves
    3. Renter reads the pickup location (still masked)
    4. Payment webhook relay marks the booking PAID (system actor)
    5. Renter reads the pickup location (revealed)
    6. Host starts the rental
    7. Renter completes
    8. Host tries to move COMPLETED back to PENDING (expect 400)
"""

import argparse
import json
import sys

import httpx

BASE_URL = "http://localhost:8000"


def api_request(method: str, endpoint: str, data: dict | None = None, headers: dict | None = None) -> dict:
    """Make an API request and return status plus decoded body."""
    response = httpx.request(
        method,
        f"{BASE_URL}{endpoint}",
        headers=headers or {},
        json=data,
        timeout=10.0,
        follow_redirects=True,
    )
    return {"status": response.status_code, "data": response.json() if response.text else {}}


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def expect(result: dict, status: int) -> None:
    print(f"Status: {result['status']}")
    print(json.dumps(result["data"], indent=2))
    if result["status"] != status:
        print(f"ERROR: expected HTTP {status}")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description="Booking lifecycle flow")
    parser.add_argument("--booking-id", required=True, help="Booking UUID in PENDING")
    parser.add_argument("--host-token", required=True)
    parser.add_argument("--renter-token", required=True)
    parser.add_argument("--internal-key", required=True)
    args = parser.parse_args()

    status_url = f"/api/v1/bookings/{args.booking_id}/status"
    location_url = f"/api/v1/bookings/{args.booking_id}/location"

    print_step(1, "Renter tries to approve (should be rejected)")
    expect(api_request("PUT", status_url, {"newStatus": "HOST_APPROVED"}, bearer(args.renter_token)), 403)

    print_step(2, "Host approves")
    expect(api_request("PUT", status_url, {"newStatus": "HOST_APPROVED"}, bearer(args.host_token)), 200)

    print_step(3, "Renter reads location before payment")
    location = api_request("GET", location_url, headers=bearer(args.renter_token))
    expect(location, 200)
    if not location["data"].get("address_masked"):
        print("ERROR: address revealed before payment")
        sys.exit(1)

    print_step(4, "Payment relay marks PAID")
    expect(
        api_request(
            "POST",
            f"/api/v1/internal/booking/{args.booking_id}/transitions",
            {"newStatus": "PAID", "reason": "payment_intent.succeeded"},
            {"X-Internal-Key": args.internal_key},
        ),
        200,
    )

    print_step(5, "Renter reads location after payment")
    location = api_request("GET", location_url, headers=bearer(args.renter_token))
    expect(location, 200)
    if location["data"].get("address_masked"):
        print("ERROR: address still masked after payment")
        sys.exit(1)

    print_step(6, "Host starts the rental")
    expect(api_request("PUT", status_url, {"newStatus": "IN_PROGRESS"}, bearer(args.host_token)), 200)

    print_step(7, "Renter completes")
    expect(
        api_request("PUT", status_url, {"newStatus": "COMPLETED", "notes": "Returned clean"}, bearer(args.renter_token)),
        200,
    )

    print_step(8, "Host tries COMPLETED -> PENDING (should be rejected)")
    expect(api_request("PUT", status_url, {"newStatus": "PENDING"}, bearer(args.host_token)), 400)

    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)


if __name__ == "__main__":
    main()
