# gcpd/scraper/__init__.py
"""
HTML extraction and browser-session helpers for GCPD pages.
"""

from .extract import RawBlock, extract_blocks, parse_match_html, parse_block_to_record
from .session import (
    create_browser_context,
    save_storage_state,
    close_browser,
    session_id_from_cookies,
    session_id_from_page,
    session_id_from_storage_state,
    cookie_header_for,
    load_storage_state,
    capture_session,
)

__all__ = [
    'RawBlock',
    'extract_blocks',
    'parse_match_html',
    'parse_block_to_record',
    'create_browser_context',
    'save_storage_state',
    'close_browser',
    'session_id_from_cookies',
    'session_id_from_page',
    'session_id_from_storage_state',
    'cookie_header_for',
    'load_storage_state',
    'capture_session',
]
