#!/usr/bin/env python3
"""
Fire N parallel GET /students requests and print the status histogram.

Useful to watch the idle pool under load: with DB_POOL_SIZE=5 and 20
concurrent requests, the first burst opens up to 20 connections (one IAM
token each), at most 5 stay idle afterwards, and a second run reuses them.

Usage:
  python scripts/load_students.py [--url URL] [--concurrent N] [--rounds R]
  Or set env: STUDENT_API_URL, CONCURRENT
"""

import argparse
import os
import sys
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed

import requests


def do_request(url: str, index: int) -> tuple[int, int]:
    """Send one GET request; return (index, status_code)."""
    try:
        r = requests.get(url, timeout=30)
        return (index, r.status_code)
    except requests.RequestException:
        return (index, -1)  # -1 = error


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Load GET /students with N parallel requests."
    )
    parser.add_argument(
        "--url",
        default=os.environ.get("STUDENT_API_URL", "http://localhost:5005/students"),
    )
    parser.add_argument(
        "--concurrent",
        type=int,
        default=int(os.environ.get("CONCURRENT", "20")),
        help="Number of concurrent requests (default 20)",
    )
    parser.add_argument("--rounds", type=int, default=1)
    args = parser.parse_args()

    if args.concurrent < 1:
        print("Error: --concurrent must be >= 1", file=sys.stderr)
        sys.exit(1)

    for rnd in range(1, args.rounds + 1):
        print(f"Round {rnd}: {args.concurrent} concurrent GET requests to {args.url}")
        counts: Counter[int] = Counter()
        with ThreadPoolExecutor(max_workers=args.concurrent) as executor:
            futures = [
                executor.submit(do_request, args.url, i)
                for i in range(1, args.concurrent + 1)
            ]
            for fut in as_completed(futures):
                _, code = fut.result()
                counts[code] += 1
        summary = " ".join(
            f"{'ERR' if code < 0 else code}={n}" for code, n in sorted(counts.items())
        )
        print(f"Done. {summary}")


if __name__ == "__main__":
    main()
