# tests/helpers.py

import json
import os
from typing import Dict, List, Optional, Sequence, Tuple

from gcpd.api_client import PageResult


def fixture_path(filename: str) -> str:
    path = os.path.join(os.path.dirname(__file__), "fixtures", filename)
    if not os.path.exists(path):
        raise FileNotFoundError(filename)
    return path


def load_json(filename: str):
    with open(fixture_path(filename), "r", encoding="utf-8") as f:
        return json.load(f)


def match_table(header: Optional[str], rows: Sequence[Tuple[str, str]],
                css_class: str = "generic_kv_table") -> str:
    """Build one GCPD key/value table."""
    class_attr = f' class="{css_class}"' if css_class else ""
    parts = [f"<table{class_attr}>"]
    if header is not None:
        parts.append(f'<tr><th colspan="2">{header}</th></tr>')
    for label, value in rows:
        parts.append(f"<tr><td>{label}</td><td>{value}</td></tr>")
    parts.append("</table>")
    return "".join(parts)


def page_payload(tables: Sequence[str], token: Optional[str] = None, success: bool = True) -> Dict:
    return {"success": success, "html": "".join(tables), "continue_token": token}


class FakeClient:
    """Stands in for GCPDClient; replays PageResults and records the tokens asked for."""

    def __init__(self, payloads: List[Dict], base_url: str = "https://steamcommunity.com/profiles/1/gcpd/440"):
        self.payloads = list(payloads)
        self.base_url = base_url
        self.session_id = None
        self.tokens: List[Optional[str]] = []

    def fetch_page(self, token: Optional[str] = None) -> PageResult:
        self.tokens.append(token)
        if not self.payloads:
            raise AssertionError("fetch_page called more times than pages available")
        return PageResult.from_payload(self.payloads.pop(0))
