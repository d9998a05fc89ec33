"""
Paginated fetch -> extract -> normalize -> dedupe -> CSV.

Pages are requested strictly in sequence; the continuation token returned by
page N is the only input to the request for page N+1.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from gcpd.aggregator import MatchAggregator
from gcpd.api_client import GCPDClient, PageResult
from gcpd.config import PipelineConfig
from gcpd.csv_export import CSV_MIME_TYPE, build_csv, export_filename
from gcpd.fields import ORDERED_COLUMNS
from gcpd.scraper.extract import extract_blocks, parse_block_to_record

logger = logging.getLogger(__name__)


class StopReason(str, enum.Enum):
    SERVICE_STOP = "service_stop"
    NO_TOKEN = "no_token"
    STALLED_TOKEN = "stalled_token"
    MAX_PAGES = "max_pages"


@dataclass
class RunSummary:
    status: str
    pages: int
    matches: int
    columns: int
    stop_reason: StopReason
    headers: List[str] = field(default_factory=list)
    csv: str = ""
    filename: str = ""
    saved_to: Optional[Any] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "pages": self.pages,
            "matches": self.matches,
            "columns": self.columns,
        }


def ingest_page(page: PageResult, aggregator: MatchAggregator, config: PipelineConfig) -> Dict[str, int]:
    """Extract and admit every match table on one page."""
    blocks = extract_blocks(page.html)
    added = 0
    for block in blocks:
        record = parse_block_to_record(block, config)
        if record is None:
            continue
        if aggregator.admit(record):
            added += 1
    return {"tables": len(blocks), "added": added}


def collect_records(client: GCPDClient, config: PipelineConfig) -> tuple[MatchAggregator, int, StopReason]:
    """
    Drive the page loop until a stop condition.

    Returns:
        (aggregator, pages_requested, stop_reason)

    Raises:
        FatalFetchError: A page kept failing past the client's retry budget.
    """
    aggregator = MatchAggregator(dedupe=config.dedupe)
    token: Optional[str] = None
    page_number = 0
    stop_reason = StopReason.MAX_PAGES

    while page_number < config.max_pages:
        page_number += 1
        if config.verbose:
            logger.info("[GCPD] page %s token=%s", page_number, token)

        page = client.fetch_page(token)
        if not page.success:
            if config.verbose:
                logger.warning("[GCPD] success=false or no json; stop.")
            stop_reason = StopReason.SERVICE_STOP
            break

        counts = ingest_page(page, aggregator, config)
        if config.verbose:
            logger.info(
                "[GCPD] page %s tables %s added %s total %s",
                page_number,
                counts["tables"],
                counts["added"],
                len(aggregator),
            )

        new_token = page.continuation_token
        if not new_token:
            stop_reason = StopReason.NO_TOKEN
        elif new_token == token:
            stop_reason = StopReason.STALLED_TOKEN
        else:
            token = new_token
            if page_number < config.max_pages:
                time.sleep(config.delay_seconds)
            continue

        if config.verbose:
            logger.info("[GCPD] finished paging (%s). token=%s", stop_reason.value, new_token)
        break

    return aggregator, page_number, stop_reason


def run_pipeline(client: GCPDClient, config: PipelineConfig, sink=None) -> RunSummary:
    """
    Fetch every page, render the CSV and hand it to the sink.

    Args:
        client: Page source exposing fetch_page(token) -> PageResult.
        config: Run configuration.
        sink: Optional object with save(content, filename, mime_type).
              Nothing is saved when a FatalFetchError propagates.
    """
    if config.verbose:
        logger.info(
            "[GCPD] start base=%s hasSession=%s delay=%s maxPages=%s",
            getattr(client, "base_url", None),
            bool(getattr(client, "session_id", None)),
            config.delay_ms,
            config.max_pages,
        )

    aggregator, pages, stop_reason = collect_records(client, config)
    csv_text, headers = build_csv(aggregator.records, ORDERED_COLUMNS, verbose=config.verbose)
    filename = export_filename(config.filename_base)

    saved_to = None
    if sink is not None:
        saved_to = sink.save(csv_text, filename, CSV_MIME_TYPE)

    summary = RunSummary(
        status="done",
        pages=pages,
        matches=len(aggregator),
        columns=len(headers),
        stop_reason=stop_reason,
        headers=headers,
        csv=csv_text,
        filename=filename,
        saved_to=saved_to,
    )
    if config.verbose:
        logger.info("[GCPD] complete %s", summary.as_dict())
    return summary
