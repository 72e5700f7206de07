#!/usr/bin/env python3
"""
Example demonstrating HSTS enforcement in hstsguard.

This script shows how a policy learned from one HTTPS response makes later
plaintext requests to the same host go out over HTTPS, and how preloaded
hosts are upgraded before any response has been seen.
"""

import sys

import hstsguard
from hstsguard.util.preload import load_preload_list


def main():
    """Run the HSTS example."""
    print("HSTS Example")
    print("============")

    hstsguard.add_stderr_logger()

    preload = {"example.com": True}
    if len(sys.argv) > 1:
        # Path to transport_security_state_static.json
        preload = load_preload_list(sys.argv[1])
        print(f"Loaded {len(preload)} preloaded hosts")

    http = hstsguard.PoolManager(preload=preload)

    for url in ("https://github.com/", "http://github.com/", "http://www.example.com/"):
        print(f"\nRequesting {url}...")
        try:
            response = http.request("GET", url)
        except hstsguard.exceptions.HTTPError as e:
            print(f"Request failed: {e}")
            continue

        for earlier in response.history:
            print(f"  {earlier.status} {earlier.reason} -> {earlier.headers.get('Location')}")
        print(f"Response status: {response.status} from {response.request_url}")
        print(f"Strict-Transport-Security: {response.headers.get('Strict-Transport-Security')}")

    print(f"\nKnown HSTS hosts: {len(http.hsts.cache)}")


if __name__ == "__main__":
    main()
