# main.py
"""
Export a GCPD match history to CSV.

Usage:
    python main.py --profile-url https://steamcommunity.com/profiles/7656.../gcpd/440
    python main.py --profile-url ... --storage-state data/steam_state.json --verbose
    python main.py --profile-url ... --session-id abc123 --max-pages 5 --out-dir exports
"""

import argparse
import logging
import sys
from typing import Optional, Tuple

from gcpd.api_client import FatalFetchError, GCPDClient
from gcpd.config import (
    DEFAULT_DELAY_MS,
    DEFAULT_MAX_PAGES,
    DEFAULT_TAB,
    PipelineConfig,
    base_url_from_profile,
    env_profile_url,
    env_session_id,
    env_storage_state,
    filename_base_from_url,
)
from gcpd.csv_export import FileSink
from gcpd.pipeline import run_pipeline
from gcpd.scraper.session import (
    cookie_header_for,
    load_storage_state,
    session_id_from_cookies,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export GCPD match history to CSV")
    parser.add_argument("--profile-url", default=env_profile_url(),
                        help="GCPD page URL (default: $GCPD_PROFILE_URL)")
    parser.add_argument("--tab", default=DEFAULT_TAB, help=f"Endpoint tab (default: {DEFAULT_TAB})")
    parser.add_argument("--delay", type=int, default=DEFAULT_DELAY_MS,
                        help=f"Pause between pages in ms (default: {DEFAULT_DELAY_MS})")
    parser.add_argument("--max-pages", type=int, default=DEFAULT_MAX_PAGES,
                        help=f"Hard page cap (default: {DEFAULT_MAX_PAGES})")
    parser.add_argument("--filename-base", default=None,
                        help="Export file name root (default: profile id from the URL)")
    parser.add_argument("--out-dir", default=".", help="Directory to write the CSV into")
    parser.add_argument("--session-id", default=env_session_id(),
                        help="sessionid credential (default: $GCPD_SESSIONID)")
    parser.add_argument("--storage-state", default=env_storage_state(),
                        help="Playwright storage-state JSON with Steam cookies")
    parser.add_argument("--no-parse-dates", dest="parse_dates", action="store_false",
                        help="Keep date cells as raw text")
    parser.add_argument("--no-parse-numbers", dest="parse_numbers", action="store_false",
                        help="Keep numeric cells as raw text")
    parser.add_argument("--no-dedupe", dest="dedupe", action="store_false",
                        help="Keep repeated match ids")
    parser.add_argument("--verbose", action="store_true", help="Log every page and retry")
    return parser


def resolve_credentials(base_url: str, session_id: Optional[str],
                        storage_state: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Return (session_id, cookie_header); an explicit session id wins over stored cookies."""
    if not storage_state:
        return session_id, None

    cookies = load_storage_state(storage_state).get("cookies", [])
    return session_id or session_id_from_cookies(cookies), cookie_header_for(base_url, cookies)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    if not args.profile_url:
        print("A profile URL is required (--profile-url or $GCPD_PROFILE_URL)")
        return 1

    try:
        base_url = base_url_from_profile(args.profile_url)
        config = PipelineConfig(
            tab=args.tab,
            delay_ms=args.delay,
            max_pages=args.max_pages,
            verbose=args.verbose,
            filename_base=args.filename_base or filename_base_from_url(args.profile_url),
            parse_dates=args.parse_dates,
            parse_numbers=args.parse_numbers,
            dedupe=args.dedupe,
        )
        session_id, cookie_header = resolve_credentials(base_url, args.session_id, args.storage_state)
    except (ValueError, RuntimeError) as exc:
        print(f"Invalid configuration: {exc}")
        return 1

    client = GCPDClient(
        base_url,
        tab=config.tab,
        session_id=session_id,
        cookie_header=cookie_header,
        verbose=config.verbose,
    )

    try:
        summary = run_pipeline(client, config, sink=FileSink(args.out_dir))
    except FatalFetchError as exc:
        print(f"Export failed: {exc}")
        return 1

    print(f"Saved {summary.matches} matches ({summary.columns} columns, "
          f"{summary.pages} pages) -> {summary.saved_to}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
