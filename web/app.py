from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
import asyncio
import os
import sys
from typing import Optional

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gcpd.api_client import FatalFetchError, GCPDClient
from gcpd.config import (
    DEFAULT_DELAY_MS,
    DEFAULT_MAX_PAGES,
    DEFAULT_TAB,
    PipelineConfig,
    base_url_from_profile,
    env_session_id,
    filename_base_from_url,
)
from gcpd.fields import ORDERED_COLUMNS
from gcpd.pipeline import run_pipeline

app = FastAPI()

MAX_PAGES_LIMIT = 5000


class ResponseSink:
    """Export sink that keeps the rendered file for an HTTP download."""

    def __init__(self):
        self.content = b""
        self.filename = ""
        self.mime_type = ""

    def save(self, content: str, filename: str, mime_type: str) -> str:
        self.content = content.encode("utf-8")
        self.filename = filename
        self.mime_type = mime_type
        return filename

    def to_response(self, extra_headers: Optional[dict] = None) -> Response:
        headers = {"Content-Disposition": f'attachment; filename="{self.filename}"'}
        headers.update(extra_headers or {})
        return Response(content=self.content, media_type=self.mime_type, headers=headers)


@app.get("/api/columns")
async def columns() -> dict:
    return {"columns": list(ORDERED_COLUMNS), "count": len(ORDERED_COLUMNS)}


@app.get("/api/export")
async def export_matches(
    profile_url: str,
    tab: str = DEFAULT_TAB,
    delay: int = DEFAULT_DELAY_MS,
    max_pages: int = DEFAULT_MAX_PAGES,
    filename_base: Optional[str] = None,
    session_id: Optional[str] = None,
    parse_dates: bool = True,
    parse_numbers: bool = True,
    dedupe: bool = True,
    verbose: bool = False,
) -> Response:
    try:
        base_url = base_url_from_profile(profile_url)
        config = PipelineConfig(
            tab=tab,
            delay_ms=delay,
            max_pages=min(max_pages, MAX_PAGES_LIMIT),
            verbose=verbose,
            filename_base=filename_base or filename_base_from_url(profile_url),
            parse_dates=parse_dates,
            parse_numbers=parse_numbers,
            dedupe=dedupe,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    client = GCPDClient(
        base_url,
        tab=config.tab,
        session_id=session_id or env_session_id(),
        verbose=config.verbose,
    )
    sink = ResponseSink()

    try:
        summary = await asyncio.to_thread(run_pipeline, client, config, sink)
    except FatalFetchError as e:
        raise HTTPException(status_code=502, detail=f"GCPD fetch failed: {str(e)}")

    return sink.to_response(
        {
            "X-GCPD-Pages": str(summary.pages),
            "X-GCPD-Matches": str(summary.matches),
            "X-GCPD-Columns": str(summary.columns),
            "X-GCPD-Stop-Reason": summary.stop_reason.value,
        }
    )


if __name__ == "__main__":
    import uvicorn

    print("Starting GCPD export server...")
    print("Open http://localhost:5000/api/columns in your browser")
    uvicorn.run(app, host="127.0.0.1", port=5000)
