"""Page-count measurement against a rendering surface."""

import asyncio
import logging

from reflow_reader.core.pagination import PAGE_COUNT_SCRIPT, parse_js_int
from reflow_reader.core.surface import RenderSurface

log = logging.getLogger(__name__)


class MeasurementError(Exception):
    """The pagination script failed or returned something that is not a number."""


async def read_page_count(surface: RenderSurface) -> int:
    try:
        result = await surface.evaluate(PAGE_COUNT_SCRIPT)
    except Exception as e:
        raise MeasurementError(f"pageCount() failed: {e}") from e

    pages = parse_js_int(result)
    if pages is None:
        raise MeasurementError(f"Unparseable page count: {result!r}")
    return max(1, pages)


async def measure_page_count(
    surface: RenderSurface, settle_delay: float, retry_delay: float
) -> int:
    """Measure the document just loaded on ``surface``.

    Some hosts report a single page when asked too early after the load
    completes, so a result of 1 is checked once more after ``retry_delay``.
    """
    await asyncio.sleep(settle_delay)
    pages = await read_page_count(surface)

    if pages == 1:
        await asyncio.sleep(retry_delay)
        retry = await read_page_count(surface)
        if retry > 1:
            log.debug("Page count corrected on retry: 1 -> %d", retry)
            pages = retry

    return pages
