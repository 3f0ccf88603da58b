# scripts/check_backend.py
"""
Script to check that the content backend is reachable and answering
"""
import asyncio
import argparse
import json
import sys
import os

import httpx

# Add parent directory to path so we can import tutor_portal modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tutor_portal.core.config import settings
from tutor_portal.routes.health import probe_backend

async def check_backend(base_url, timeout):
    async with httpx.AsyncClient(timeout=timeout) as client:
        results = await probe_backend(client, base_url.rstrip("/"))

    for result in results:
        if result["accessible"]:
            print(f"{result['endpoint']:<32} {result['status']} {result['statusText']}")
        else:
            print(f"{result['endpoint']:<32} unreachable: {result['error']}")
    return results

def main():
    parser = argparse.ArgumentParser(description="Probe the content backend's well-known endpoints")
    parser.add_argument("--base-url", default=settings.backend_base_url, help="Backend base URL (defaults to API_BASE_URL)")
    parser.add_argument("--timeout", type=float, default=settings.BACKEND_TIMEOUT_SECONDS, help="Per-request timeout in seconds")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")

    args = parser.parse_args()

    if not args.base_url:
        print("No backend URL given and API_BASE_URL / PUBLIC_API_BASE_URL are not set")
        sys.exit(2)

    results = asyncio.run(check_backend(args.base_url, args.timeout))

    if args.json:
        print(json.dumps(results, indent=2))

    if not any(r["accessible"] for r in results):
        sys.exit(1)

if __name__ == "__main__":
    main()
