"""
PDF export through a headless browser.

The browser opens the app's own print route, so the page is laid out by the
same code as the interactive preview, then prints it to an A4 PDF. Page
margins are already part of each page's padding, so the PDF itself gets none.

Generation of one document is serialized, and the number of browsers running
at once is capped by MAX_BROWSERS. A request that waits longer than
PRINT_QUEUE_TIMEOUT_S for either fails with RenderBusy.
"""

import logging
import threading
import time
from contextlib import contextmanager
from pathlib import Path

from bson import ObjectId
from fastapi import HTTPException

from config import (
    get_max_browsers,
    get_print_base_url,
    get_queue_timeout_s,
    get_settle_ms,
    get_uploads_dir,
)
from database import get_collection, now
from errors import EmptyDocumentError, RenderBusy, RenderDependencyMissing, RenderFailure
from layout import SAMPLE_PAGE_GUIDELINE, estimate_page_count
from renderable import build_cv, build_portfolio

logger = logging.getLogger(__name__)

INSTALL_HINT = (
    "Playwright is not installed. Install it with: "
    "pip install playwright && playwright install chromium"
)
PDF_MARGIN = {"top": "0mm", "right": "0mm", "bottom": "0mm", "left": "0mm"}

WAIT_FOR_FONTS = "() => document.fonts ? document.fonts.ready.then(() => null) : null"
WAIT_FOR_IMAGES = """async () => {
  const images = Array.from(document.images || []);
  await Promise.all(images.map((img) => (img.decode ? img.decode().catch(() => null) : null)));
}"""

_locks_guard = threading.Lock()
# key -> [lock, number of requests holding or waiting on it]
_document_locks = {}
_slots_guard = threading.Lock()
_browser_slots = None


@contextmanager
def document_lock(key: str):
    """Serialize generation of one document; the entry is dropped when unused."""
    with _locks_guard:
        entry = _document_locks.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1
    try:
        if not entry[0].acquire(timeout=get_queue_timeout_s()):
            raise RenderBusy(f"{key} is already being generated; try again shortly")
        try:
            yield
        finally:
            entry[0].release()
    finally:
        with _locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _document_locks[key]


def _slots() -> threading.BoundedSemaphore:
    global _browser_slots
    with _slots_guard:
        if _browser_slots is None:
            _browser_slots = threading.BoundedSemaphore(get_max_browsers())
        return _browser_slots


@contextmanager
def browser_slot():
    slots = _slots()
    if not slots.acquire(timeout=get_queue_timeout_s()):
        raise RenderBusy("All browsers are busy; try again shortly")
    try:
        yield
    finally:
        slots.release()


def load_driver():
    """Import the Playwright sync API, or raise RenderDependencyMissing."""
    try:
        from playwright import sync_api
    except ImportError as exc:
        raise RenderDependencyMissing(INSTALL_HINT) from exc
    return sync_api


@contextmanager
def browser_session():
    """Yield a launched Chromium; it is closed on every exit path."""
    api = load_driver()
    with browser_slot():
        with api.sync_playwright() as pw:
            try:
                browser = pw.chromium.launch(headless=True)
            except api.Error as exc:
                if "Executable doesn't exist" in str(exc):
                    raise RenderDependencyMissing(INSTALL_HINT) from exc
                raise RenderFailure(f"Browser launch failed: {exc}") from exc
            try:
                yield browser
            finally:
                browser.close()


def print_url_to_pdf(url: str, output: Path) -> int:
    """Print the page at url to output; returns the file size in bytes."""
    api = load_driver()
    with browser_session() as browser:
        try:
            context = browser.new_context(device_scale_factor=2)
            page = context.new_page()
            page.goto(url, wait_until="networkidle")
            page.emulate_media(media="print")
            page.evaluate(WAIT_FOR_FONTS)
            page.evaluate(WAIT_FOR_IMAGES)
            page.wait_for_timeout(get_settle_ms())
            page.pdf(
                path=str(output),
                format="A4",
                print_background=True,
                prefer_css_page_size=True,
                margin=PDF_MARGIN,
            )
        except api.Error as exc:
            raise RenderFailure(f"Printing {url} failed: {exc}") from exc
    return output.stat().st_size


def _output_dir(name: str) -> Path:
    path = get_uploads_dir() / name
    path.mkdir(parents=True, exist_ok=True)
    return path


def generate_portfolio_pdf(portfolio_id: str) -> dict:
    with document_lock(f"portfolio:{portfolio_id}"):
        document = build_portfolio(portfolio_id)
        if document is None:
            raise HTTPException(status_code=404, detail="Portfolio not found")
        if not document.projects and (document.cv is None or document.cv.is_empty()):
            raise EmptyDocumentError("Portfolio has no projects to render")

        pages = estimate_page_count(document)
        if document.portfolio_type == "SAMPLE" and pages > SAMPLE_PAGE_GUIDELINE:
            logger.warning("Sample portfolio %s runs to %d pages (guideline %d)",
                           portfolio_id, pages, SAMPLE_PAGE_GUIDELINE)

        file_name = f"{portfolio_id}.pdf"
        output = _output_dir("portfolios") / file_name
        url = f"{get_print_base_url()}/print/portfolio/{portfolio_id}"
        logger.info("Generating portfolio PDF %s from %s", output, url)
        size = print_url_to_pdf(url, output)

        public_path = f"/uploads/portfolios/{file_name}"
        get_collection("portfolio").update_one(
            {"_id": ObjectId(portfolio_id)},
            {"$set": {"file_path": public_path, "file_size": size, "total_pages": pages, "updated_at": now()}},
        )
        logger.info("Portfolio PDF written: %s (%d bytes, %d pages)", public_path, size, pages)
        return {"filePath": public_path, "fileSize": size}


def generate_cv_pdf() -> dict:
    with document_lock("cv"):
        document = build_cv()
        if document.cv.is_empty():
            raise EmptyDocumentError("No CV data available to render")

        file_name = f"cv-{int(time.time() * 1000)}.pdf"
        output = _output_dir("cv") / file_name
        url = f"{get_print_base_url()}/print/cv"
        logger.info("Generating CV PDF %s from %s", output, url)
        size = print_url_to_pdf(url, output)

        public_path = f"/uploads/cv/{file_name}"
        logger.info("CV PDF written: %s (%d bytes)", public_path, size)
        return {"filePath": public_path, "fileSize": size}
