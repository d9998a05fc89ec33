# gcpd/scraper/session.py
"""
Session credential lookup for GCPD requests.

The ajax endpoint wants the viewer's `sessionid`, which lives either in the
page global `g_sessionID` or in the `sessionid` cookie. In a live browser we
read both through Playwright; offline we read the cookie from a saved
Playwright storage-state file.
"""

import json
import logging
import os
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import unquote, urlsplit

logger = logging.getLogger(__name__)

SESSION_COOKIE = 'sessionid'
SESSION_GLOBAL_JS = "() => (typeof window.g_sessionID !== 'undefined' && window.g_sessionID) || null"


def session_id_from_cookies(cookies: Iterable[Dict[str, Any]]) -> Optional[str]:
    """
    Return the percent-decoded `sessionid` cookie value, if any.

    Args:
        cookies: Cookie dicts as returned by BrowserContext.cookies() or
                 stored under "cookies" in a storage-state file.
    """
    for cookie in cookies or []:
        if cookie.get('name') == SESSION_COOKIE and cookie.get('value'):
            return unquote(cookie['value'])
    return None


def load_storage_state(path: str) -> Dict[str, Any]:
    """
    Load a Playwright storage-state JSON file.

    Raises:
        RuntimeError: If the file cannot be read or is not valid JSON
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            state = json.load(f)
    except (OSError, ValueError) as e:
        raise RuntimeError(f"Failed to load storage state from {path}: {e}")
    if not isinstance(state, dict):
        raise RuntimeError(f"Storage state in {path} is not a JSON object")
    return state


def session_id_from_storage_state(path: str) -> Optional[str]:
    return session_id_from_cookies(load_storage_state(path).get('cookies', []))


def _domain_matches(host: str, cookie_domain: str) -> bool:
    domain = (cookie_domain or '').lstrip('.').lower()
    host = host.lower()
    return bool(domain) and (host == domain or host.endswith('.' + domain))


def cookie_header_for(url: str, cookies: Iterable[Dict[str, Any]]) -> Optional[str]:
    """Build a Cookie header from the cookies scoped to the URL's origin."""
    parts = urlsplit(url)
    host = parts.hostname or ''
    path = parts.path or '/'
    now = time.time()
    pairs: List[str] = []
    for cookie in cookies or []:
        if not _domain_matches(host, cookie.get('domain', '')):
            continue
        if not path.startswith(cookie.get('path') or '/'):
            continue
        if cookie.get('secure') and parts.scheme != 'https':
            continue
        # Session cookies carry expires -1.
        expires = cookie.get('expires') or 0
        if 0 < expires < now:
            continue
        pairs.append(f"{cookie['name']}={cookie.get('value', '')}")
    return '; '.join(pairs) or None


def session_id_from_page(page) -> Optional[str]:
    """
    Read the session credential from a live Playwright page.

    Prefers the `g_sessionID` page global, then the context's cookies.
    """
    try:
        value = page.evaluate(SESSION_GLOBAL_JS)
    except Exception as e:
        logger.debug("g_sessionID lookup failed: %s", e)
        value = None
    if value:
        return str(value)
    return session_id_from_cookies(page.context.cookies())


def create_browser_context(
    headed: bool = True,
    storage_state_path: Optional[str] = None
) -> Tuple[Any, Any, Any]:
    """
    Create a Playwright browser and context.

    Args:
        headed: If True, run browser in headed mode (visible window)
        storage_state_path: Storage-state JSON to preload cookies from, if it exists.

    Returns:
        (playwright, browser, context) tuple; pass playwright to close_browser

    Raises:
        ImportError: If Playwright is not installed
        RuntimeError: If browser launch fails
    """
    try:
        from playwright.sync_api import sync_playwright
    except ImportError as exc:
        raise ImportError(
            "Playwright is not installed.\n"
            "Install with: pip install playwright\n"
            "Then run: python -m playwright install chromium"
        ) from exc

    playwright = None
    try:
        playwright = sync_playwright().start()
        browser = playwright.chromium.launch(headless=not headed)

        context_kwargs = {}
        if storage_state_path and os.path.exists(storage_state_path):
            context_kwargs['storage_state'] = storage_state_path

        context = browser.new_context(**context_kwargs)
        return playwright, browser, context
    except Exception as e:
        if playwright is not None:
            playwright.stop()
        raise RuntimeError(f"Failed to create browser context: {e}")


def save_storage_state(context, path: str) -> None:
    """
    Save browser storage state (cookies, localStorage) to JSON file.

    Raises:
        RuntimeError: If save fails
    """
    try:
        context.storage_state(path=path)
    except Exception as e:
        raise RuntimeError(f"Failed to save storage state to {path}: {e}")


def close_browser(browser, playwright=None) -> None:
    try:
        browser.close()
    except Exception as e:
        logger.debug("Browser close failed: %s", e)
    if playwright is not None:
        try:
            playwright.stop()
        except Exception as e:
            logger.debug("Playwright stop failed: %s", e)


def capture_session(
    profile_url: str,
    storage_state_path: str = "storage_state.json",
    headed: bool = True,
    wait_for_login: Optional[Callable[[], None]] = None,
) -> Optional[str]:
    """
    Open the GCPD page in a browser, let the user sign in, persist cookies.

    Args:
        profile_url: GCPD page to open
        storage_state_path: Where to save cookies; loaded first if present
        headed: Show the browser window (needed to sign in)
        wait_for_login: Blocks until the user has signed in; skipped when None

    Returns:
        The session id seen on the page, or None if the user is not signed in

    Raises:
        ImportError: If Playwright not installed
        RuntimeError: If the browser cannot be launched or state not saved
    """
    playwright, browser, context = create_browser_context(
        headed=headed,
        storage_state_path=storage_state_path
    )
    try:
        page = context.new_page()
        page.goto(profile_url, wait_until="domcontentloaded")
        if wait_for_login is not None:
            wait_for_login()
            page.reload(wait_until="domcontentloaded")

        session_id = session_id_from_page(page)
        save_storage_state(context, storage_state_path)
        return session_id
    finally:
        close_browser(browser, playwright)
