#!/usr/bin/env python3
"""Send signed provider notifications to a running service and check its answers."""
import argparse
import dataclasses
import sys
import time
import uuid
from concurrent.futures import ThreadPoolExecutor

import httpx

from settlement_webhook.utils.signature import sign_fields

WEBHOOK_PATH = "/webhooks/payment-provider"


@dataclasses.dataclass
class CheckResult:
    name: str
    passed: bool
    detail: str
    extra: str | None = None


def make_notification(txn_id: str, secret: str, state: str = "COMPLETED", amount: str = "150.00") -> dict:
    fields = {
        "merchantOrderId": f"order_{txn_id}",
        "transactionId": txn_id,
        "state": state,
        "amount": amount,
        "currency": "ETB",
        "payerMsisdn": "251911000000",
    }
    return {**fields, "signature": sign_fields(fields, secret)}


def get_settlement(client: httpx.Client, base_url: str, txn_id: str) -> httpx.Response:
    return client.get(f"{base_url}/v1/settlements/{txn_id}")


def expect_status(name: str, resp: httpx.Response, expected: int) -> CheckResult | None:
    if resp.status_code != expected:
        return CheckResult(name, False, f"Expected {expected}, got {resp.status_code}", resp.text)
    return None


def run_health_check(client: httpx.Client, base_url: str) -> CheckResult:
    try:
        resp = client.get(f"{base_url}/")
        failure = expect_status("Health Check", resp, 200)
        if failure:
            return failure
        if resp.json().get("status") != "HEALTHY":
            return CheckResult("Health Check", False, f"Expected HEALTHY, got {resp.json().get('status')!r}")
        return CheckResult("Health Check", True, "Health check endpoint working correctly")
    except httpx.HTTPError as exc:
        return CheckResult("Health Check", False, f"Exception: {exc}")


def run_settlement(client: httpx.Client, base_url: str, secret: str) -> CheckResult:
    txn_id = f"settle_{uuid.uuid4().hex[:10]}"
    try:
        failure = expect_status("Settlement", client.post(f"{base_url}{WEBHOOK_PATH}", json=make_notification(txn_id, secret)), 200)
        if failure:
            return failure
        failure = expect_status("Settlement", get_settlement(client, base_url, txn_id), 200)
        if failure:
            return failure
        return CheckResult("Settlement", True, "COMPLETED notification produced a settlement record")
    except httpx.HTTPError as exc:
        return CheckResult("Settlement", False, f"Exception: {exc}")


def run_duplicate_delivery(client: httpx.Client, base_url: str, secret: str, deliveries: int) -> CheckResult:
    txn_id = f"duplicate_{uuid.uuid4().hex[:10]}"
    payload = make_notification(txn_id, secret)

    def post_one(_: int) -> int:
        return client.post(f"{base_url}{WEBHOOK_PATH}", json=payload).status_code

    try:
        with ThreadPoolExecutor(max_workers=deliveries) as ex:
            codes = list(ex.map(post_one, range(deliveries)))
        if any(code != 200 for code in codes):
            return CheckResult("Duplicate Delivery", False, f"Non-200 answers to duplicate deliveries: {codes}")
        failure = expect_status("Duplicate Delivery", get_settlement(client, base_url, txn_id), 200)
        if failure:
            return failure
        return CheckResult("Duplicate Delivery", True, f"{deliveries} overlapping deliveries all acknowledged")
    except httpx.HTTPError as exc:
        return CheckResult("Duplicate Delivery", False, f"Exception: {exc}")


def run_pending_not_settled(client: httpx.Client, base_url: str, secret: str) -> CheckResult:
    txn_id = f"pending_{uuid.uuid4().hex[:10]}"
    try:
        resp = client.post(f"{base_url}{WEBHOOK_PATH}", json=make_notification(txn_id, secret, state="PENDING"))
        failure = expect_status("Pending Notification", resp, 200)
        if failure:
            return failure
        failure = expect_status("Pending Notification", get_settlement(client, base_url, txn_id), 404)
        if failure:
            return failure
        return CheckResult("Pending Notification", True, "PENDING notification acknowledged without settlement")
    except httpx.HTTPError as exc:
        return CheckResult("Pending Notification", False, f"Exception: {exc}")


def run_tampered(client: httpx.Client, base_url: str, secret: str) -> CheckResult:
    txn_id = f"tampered_{uuid.uuid4().hex[:10]}"
    payload = {**make_notification(txn_id, secret), "amount": "1.00"}
    try:
        failure = expect_status("Tampered Notification", client.post(f"{base_url}{WEBHOOK_PATH}", json=payload), 401)
        if failure:
            return failure
        return CheckResult("Tampered Notification", True, "Modified amount rejected with 401")
    except httpx.HTTPError as exc:
        return CheckResult("Tampered Notification", False, f"Exception: {exc}")


def run_invalid_payload(client: httpx.Client, base_url: str) -> CheckResult:
    try:
        failure = expect_status("Invalid Payload", client.post(f"{base_url}{WEBHOOK_PATH}", json={}), 422)
        if failure:
            return failure
        return CheckResult("Invalid Payload", True, "Empty body rejected with 422")
    except httpx.HTTPError as exc:
        return CheckResult("Invalid Payload", False, f"Exception: {exc}")


def print_report(results: list[CheckResult], total_seconds: float) -> int:
    passed = sum(1 for r in results if r.passed)
    total = len(results)
    verdict = "PASS" if passed == total else "FAIL"
    print(f"RESULT: {verdict} ({passed} / {total} checks passed)\n")
    print("Check results:")
    for res in results:
        state = "PASS" if res.passed else "FAIL"
        print(f"- {state} | {res.name}")
        print(f"  - {res.detail}")
        if res.extra:
            print(f"  - {res.extra}")
    print(f"\nTotal time: {total_seconds:.1f}s")
    return 0 if passed == total else 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Payment provider notification simulator")
    parser.add_argument("--base-url", default="http://localhost:8000", help="Base URL of the webhook service")
    parser.add_argument("--secret", required=True, help="Shared secret configured as PAYMENT_WEBHOOK_SECRET")
    parser.add_argument("--request-timeout-seconds", type=float, default=10.0, help="HTTP request timeout")
    parser.add_argument("--duplicate-deliveries", type=int, default=5, help="Overlapping deliveries of one notification")
    args = parser.parse_args()

    started = time.perf_counter()
    with httpx.Client(timeout=args.request_timeout_seconds) as client:
        results = [
            run_health_check(client, args.base_url),
            run_invalid_payload(client, args.base_url),
            run_tampered(client, args.base_url, args.secret),
            run_settlement(client, args.base_url, args.secret),
            run_duplicate_delivery(client, args.base_url, args.secret, args.duplicate_deliveries),
            run_pending_not_settled(client, args.base_url, args.secret),
        ]
    total = time.perf_counter() - started
    return print_report(results, total)


if __name__ == "__main__":
    sys.exit(main())
