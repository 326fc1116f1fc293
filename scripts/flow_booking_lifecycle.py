#!/usr/bin/env python3
"""
Booking lifecycle walkthrough against a running API.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_booking_lifecycle.py --field-id 1 --date 2026-06-15 \
        --customer-token <JWT> --cashier-token <JWT> --operator-token <JWT>

Flow:
    1. Customer books A [14:00, 16:00)
    2. Operator tries to confirm A (refused: payment not completed)
    3. Cashier records a cash payment for A
    4. Operator confirms A
    5. Customer tries to book B [15:00, 17:00) (refused: conflict)
    6. Customer cancels A
    7. Customer books B again (pending)
"""

import argparse
import json
import sys

import httpx

BASE_URL = "http://localhost:8000"


def api_request(token: str, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make authenticated API request."""
    headers = {"Authorization": f"Bearer {token}"}
    response = httpx.request(
        method,
        f"{BASE_URL}{endpoint}",
        headers=headers,
        json=data if method != "GET" else None,
        timeout=10.0,
        follow_redirects=True,
    )
    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def expect(result: dict, status: int, fields: list[str] | None = None) -> dict:
    """Print result and exit unless the status matches."""
    data = result["data"]
    if fields and isinstance(data, dict):
        data = {k: data.get(k) for k in fields if k in data}
    print(f"Status: {result['status']}")
    print(json.dumps(data, indent=2, default=str))
    if result["status"] != status:
        print(f"ERROR: expected {status}")
        sys.exit(1)
    return result["data"]


def booking_payload(args, start: str, end: str) -> dict:
    return {
        "field_id": args.field_id,
        "date": args.date,
        "start_time": start,
        "end_time": end,
        "name": "Walkthrough Customer",
        "phone": "081234567890",
        "base_amount": 100000,
    }


def main():
    parser = argparse.ArgumentParser(description="Booking lifecycle walkthrough")
    parser.add_argument("--field-id", type=int, required=True)
    parser.add_argument("--date", required=True, help="Booking date (YYYY-MM-DD), in the future")
    parser.add_argument("--customer-token", required=True)
    parser.add_argument("--cashier-token", required=True)
    parser.add_argument("--operator-token", required=True)
    args = parser.parse_args()

    fields = ["id", "booking_number", "start_time", "end_time", "status", "payment_status"]

    print_step(1, "Customer books A [14:00, 16:00)")
    a = expect(
        api_request(args.customer_token, "POST", "/api/v1/bookings/", booking_payload(args, "14:00", "16:00")),
        201,
        fields,
    )

    print_step(2, "Operator confirms A before payment")
    expect(api_request(args.operator_token, "POST", f"/api/v1/bookings/{a['id']}/confirm", {}), 402)

    print_step(3, "Cashier records cash payment for A")
    expect(
        api_request(args.cashier_token, "POST", "/api/v1/payments/", {"booking_id": a["id"], "method": "cash"}),
        201,
        ["payment_number", "method", "status", "total_amount"],
    )

    print_step(4, "Operator confirms A")
    expect(api_request(args.operator_token, "POST", f"/api/v1/bookings/{a['id']}/confirm", {}), 200, fields)

    print_step(5, "Customer books B [15:00, 17:00) while A is confirmed")
    expect(
        api_request(args.customer_token, "POST", "/api/v1/bookings/", booking_payload(args, "15:00", "17:00")),
        409,
    )

    print_step(6, "Customer cancels A")
    expect(
        api_request(args.customer_token, "POST", f"/api/v1/bookings/{a['id']}/cancel", {"reason": "Plans changed"}),
        200,
        fields,
    )

    print_step(7, "Customer books B again")
    b = expect(
        api_request(args.customer_token, "POST", "/api/v1/bookings/", booking_payload(args, "15:00", "17:00")),
        201,
        fields,
    )

    print("\n" + "="*60)
    print("FLOW COMPLETE")
    print("="*60)
    print(f"A: {a['booking_number']} (cancelled)")
    print(f"B: {b['booking_number']} ({b['status']})")


if __name__ == "__main__":
    main()
