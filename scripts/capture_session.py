#!/usr/bin/env python3
# scripts/capture_session.py
"""
Sign in to Steam once in a real browser and save the session for exports.

Usage:
    python scripts/capture_session.py --profile-url https://steamcommunity.com/profiles/7656.../gcpd/440
    python scripts/capture_session.py --profile-url ... --storage-state data/steam_state.json

The saved storage-state file is then passed to main.py with --storage-state
(or $GCPD_STORAGE_STATE).
"""

import argparse
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from gcpd.config import env_profile_url, env_storage_state
from gcpd.scraper.session import capture_session


def main():
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description='Capture a signed-in Steam session for GCPD exports',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--profile-url', default=env_profile_url(),
                        help='GCPD page URL (default: $GCPD_PROFILE_URL)')
    parser.add_argument(
        '--storage-state',
        default=env_storage_state() or 'storage_state.json',
        help='Path to storage state file (default: storage_state.json)'
    )
    parser.add_argument(
        '--headless',
        action='store_true',
        default=False,
        help='Reuse an existing storage state without showing the browser'
    )
    args = parser.parse_args()

    if not args.profile_url:
        print("✗ ERROR: --profile-url is required")
        sys.exit(1)

    headed = not args.headless

    def _wait_for_login():
        input("[LOGIN] Sign in in the browser window, then press Enter here...")

    print(f"[BROWSER] Opening browser ({'headed' if headed else 'headless'} mode)...")
    try:
        session_id = capture_session(
            args.profile_url,
            storage_state_path=args.storage_state,
            headed=headed,
            wait_for_login=_wait_for_login if headed else None,
        )
    except (ImportError, RuntimeError) as e:
        print(f"✗ ERROR: {e}")
        sys.exit(1)

    if not session_id:
        print("✗ No sessionid found; the browser does not look signed in.")
        sys.exit(1)

    print(f"✓ Session saved to {args.storage_state}")


if __name__ == '__main__':
    main()
