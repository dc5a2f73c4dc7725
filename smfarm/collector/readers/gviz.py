"""Google Sheets reader using the Visualization (gviz) query endpoint."""

import asyncio
import json
import logging
from typing import Any, List, Optional
from urllib.parse import quote

import aiohttp

from smfarm.collector.config.settings import SheetConfig
from .base import RowQuery, RowSource, RowSourceError

logger = logging.getLogger(__name__)

GVIZ_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq"

# Column L (battery mV) is selected so row positions stay fixed; it is not used.
SELECT_COLUMNS = "A,B,C,D,E,F,G,H,I,J,K,L,M"

NO_CACHE = {"Cache-Control": "no-store"}


def sql_quote(value: Any) -> str:
    """Quote a literal for the gviz query language."""
    return "'" + str(value).replace("'", "''") + "'"


def build_query(query: RowQuery) -> str:
    """Build the gviz query string for a RowQuery."""
    where = []
    if query.start_date:
        where.append(f"A >= datetime {sql_quote(query.start_date.isoformat() + ' 00:00:00')}")
    if query.end_date:
        where.append(f"A <= datetime {sql_quote(query.end_date.isoformat() + ' 23:59:59')}")
    if query.device:
        where.append(f"B = {sql_quote(query.device)}")

    where_clause = f" where {' and '.join(where)}" if where else ""
    limit_clause = f" limit {query.limit}" if query.limit else ""
    return f"select {SELECT_COLUMNS}{where_clause} order by A desc{limit_clause}"


def build_url(sheet: SheetConfig, query: RowQuery) -> str:
    base = GVIZ_URL.format(sheet_id=sheet.sheet_id)
    return (
        f"{base}?sheet={quote(sheet.sheet_name, safe='')}"
        f"&tqx=out:json&tq={quote(build_query(query), safe='')}"
    )


def parse_gviz(text: str) -> List[List[Any]]:
    """Extract row cell values from a gviz JSONP response.

    Raises:
        RowSourceError: If the payload is not a gviz response.
    """
    start = text.find("(")
    end = text.rfind(")")
    if start < 0 or end <= start:
        raise RowSourceError("Unexpected gviz response: no JSON payload")

    try:
        payload = json.loads(text[start + 1:end])
    except json.JSONDecodeError as e:
        raise RowSourceError(f"Invalid gviz JSON: {e}") from e

    if payload.get("status") == "error":
        errors = "; ".join(e.get("detailed_message") or e.get("message", "") for e in payload.get("errors", []))
        raise RowSourceError(f"gviz query failed: {errors}")

    table = payload.get("table") or {}
    return [
        [cell.get("v") if cell else None for cell in (row.get("c") or [])]
        for row in table.get("rows") or []
    ]


class GvizSheetReader(RowSource):
    """Reads sensor rows from a published Google Sheet."""

    def __init__(self, config: SheetConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._session = session
        logger.info(f"Initialized GvizSheetReader for sheet {config.sheet_name!r}")

    async def _get(self, url: str) -> str:
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        if self._session is not None:
            async with self._session.get(url, headers=NO_CACHE, timeout=timeout) as response:
                response.raise_for_status()
                return await response.text()

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, headers=NO_CACHE) as response:
                response.raise_for_status()
                return await response.text()

    async def fetch_rows(self, query: RowQuery) -> List[List[Any]]:
        url = build_url(self.config, query)
        logger.debug(f"Fetching {build_query(query)}")
        try:
            text = await self._get(url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RowSourceError(f"Sheet request failed: {e}") from e

        rows = parse_gviz(text)
        logger.debug(f"Got {len(rows)} rows from sheet")
        return rows

    async def check_health(self) -> bool:
        try:
            await self.fetch_rows(RowQuery(limit=1))
            return True
        except RowSourceError as e:
            logger.warning(f"Sheet health check failed: {e}")
            return False
