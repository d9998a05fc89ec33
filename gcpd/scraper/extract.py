from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from bs4 import BeautifulSoup

from gcpd.fields import CANONICAL_MAP, canonicalize, normalize_key
from gcpd.values import Value, parse_value

MATCH_TABLE_SELECTOR = "table.generic_kv_table"
MATCH_HEADER_RE = re.compile(r"Match\s*([0-9]+)", re.I)

Record = Dict[str, Value]


@dataclass(frozen=True)
class RawBlock:
    """One match table cut out of a page payload."""

    id: Optional[str]
    content: str


def _find_tables(soup: BeautifulSoup) -> List[Any]:
    tables = soup.select(MATCH_TABLE_SELECTOR)
    if not tables:
        tables = soup.find_all("table")
    return tables


def _header_text(table) -> Optional[str]:
    th = table.find("th")
    if th is None:
        return None
    return th.get_text().strip()


def _header_match_id(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    match = MATCH_HEADER_RE.search(header)
    return match.group(1) if match else None


def extract_blocks(html: str) -> List[RawBlock]:
    """Split a page's HTML payload into one RawBlock per match table."""
    soup = BeautifulSoup(html or "", "html.parser")
    return [
        RawBlock(id=_header_match_id(_header_text(table)), content=str(table))
        for table in _find_tables(soup)
    ]


def parse_match_html(
    html: str,
    parse_dates: bool = True,
    parse_numbers: bool = True,
    canonical_map: Mapping[str, str] = CANONICAL_MAP,
) -> Optional[Record]:
    """
    Parse a single match table into a record.

    Returns None when the fragment holds no table at all. The header cell
    gives match_id ("Match 123") or, failing that pattern, match_title.
    Only rows with exactly two <td> cells become fields.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    table = soup.select_one(MATCH_TABLE_SELECTOR) or soup.find("table")
    if table is None:
        return None

    out: Record = {}
    header = _header_text(table)
    if header is not None:
        match_id = _header_match_id(header)
        if match_id:
            out["match_id"] = match_id
        else:
            out["match_title"] = header

    for row in table.find_all("tr"):
        cells = row.find_all("td")
        if len(cells) != 2:
            continue
        raw_key = cells[0].get_text().strip()
        raw_value = cells[1].get_text().strip()
        key = canonicalize(normalize_key(raw_key), canonical_map)
        out[key] = parse_value(raw_value, parse_numbers=parse_numbers, parse_dates=parse_dates)

    return out


def parse_block_to_record(block: RawBlock, config) -> Optional[Record]:
    record = parse_match_html(
        block.content,
        parse_dates=config.parse_dates,
        parse_numbers=config.parse_numbers,
    )
    if record is None:
        return None
    if block.id and not record.get("match_id"):
        record["match_id"] = str(block.id)
    return record
