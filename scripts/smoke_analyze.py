#!/usr/bin/env python3
"""Smoke test for the /analyze endpoint against a running server.

Usage:
  python scripts/smoke_analyze.py --base-url http://127.0.0.1:8000 --report "Fever and cough for 3 days"

Environment fallbacks:
  MEDREPORT_BASE_URL, MEDREPORT_REPORT
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any

import httpx


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="MedReport /analyze smoke test")
    parser.add_argument("--base-url", default=os.getenv("MEDREPORT_BASE_URL", "http://127.0.0.1:8000"))
    parser.add_argument("--name", default="Smoke Test")
    parser.add_argument("--age", default="30")
    parser.add_argument("--city", default="Delhi")
    parser.add_argument(
        "--report",
        default=os.getenv("MEDREPORT_REPORT", "Mild fever, headache and sore throat for two days."),
    )
    parser.add_argument("--timeout", type=float, default=180.0)
    parser.add_argument("--quiet", action="store_true")
    return parser.parse_args()


def exit_with(message: str, code: int = 1) -> None:
    print(message, file=sys.stderr)
    raise SystemExit(code)


def safe_json(response: httpx.Response) -> dict[str, Any]:
    try:
        return response.json()
    except ValueError:
        return {}


def main() -> None:
    args = parse_args()
    client = httpx.Client(base_url=args.base_url.rstrip("/"), timeout=args.timeout)

    try:
        health = client.get("/health")
    except httpx.HTTPError as exc:
        exit_with(f"Health check failed: {exc}")

    if health.status_code != 200:
        exit_with(f"Health check failed: HTTP {health.status_code} {health.text}")

    payload = {
        "name": args.name,
        "age": args.age,
        "city": args.city,
        "report_text": args.report,
    }
    response = client.post("/analyze", json=payload)
    data = safe_json(response)
    if response.status_code != 200:
        exit_with(f"Analysis failed: HTTP {response.status_code} {data.get('code')} {data.get('message')}")

    analysis = data.get("analysis") or {}
    if not args.quiet:
        print(json.dumps(analysis, indent=2, ensure_ascii=False))
        for link in data.get("doctor_links") or []:
            print(f"{link['specialization']}: {link['url']}")

    print(
        f"OK: {len(analysis.get('symptoms', []))} symptoms, "
        f"{len(analysis.get('possibleConditions', []))} conditions"
    )


if __name__ == "__main__":
    main()
