"""
Tests for printer.py - PDF generation without launching a real browser.
"""

import sys
import threading
import time
import types
from contextlib import contextmanager

import pytest
from bson import ObjectId
from fastapi import HTTPException

import printer
from conftest import asset
from errors import EmptyDocumentError, RenderBusy, RenderDependencyMissing, RenderFailure


class FakeError(Exception):
    pass


class FakePage:
    def __init__(self, fail_on_goto=False):
        self.fail_on_goto = fail_on_goto
        self.visited = []

    def goto(self, url, wait_until=None):
        if self.fail_on_goto:
            raise FakeError("net::ERR_CONNECTION_REFUSED")
        self.visited.append(url)

    def emulate_media(self, media=None):
        pass

    def evaluate(self, script):
        return None

    def wait_for_timeout(self, ms):
        pass

    def pdf(self, path, **options):
        self.options = options
        with open(path, "wb") as f:
            f.write(b"%PDF-1.4 test")


class FakeBrowser:
    def __init__(self, page):
        self.page = page
        self.closed = False

    def new_context(self, **kwargs):
        return types.SimpleNamespace(new_page=lambda: self.page)

    def close(self):
        self.closed = True


def fake_driver(browser=None, launch_error=None):
    def launch(headless=True):
        if launch_error:
            raise FakeError(launch_error)
        return browser

    @contextmanager
    def sync_playwright():
        yield types.SimpleNamespace(chromium=types.SimpleNamespace(launch=launch))

    return types.SimpleNamespace(sync_playwright=sync_playwright, Error=FakeError)


@pytest.fixture
def no_browser(monkeypatch):
    """Record any attempt to start a browser."""
    calls = []

    def refuse(*args, **kwargs):
        calls.append(args)
        raise AssertionError("browser must not be started")

    monkeypatch.setattr(printer, "load_driver", refuse)
    monkeypatch.setattr(printer, "browser_session", refuse)
    return calls


class TestGenerateCvPdf:
    """Tests for generate_cv_pdf."""

    def test_empty_cv_fails_before_browser_launch(self, mongo_db, uploads_dir, no_browser):
        """No personal info and no entries is an empty document."""
        with pytest.raises(EmptyDocumentError):
            printer.generate_cv_pdf()
        assert no_browser == []

    def test_missing_driver_is_reported(self, mongo_db, uploads_dir, monkeypatch):
        """An uninstalled playwright package gives the dependency error."""
        mongo_db["cvskill"].insert_one({"category": "SOFTWARE", "skill_name": "Revit",
                                        "proficiency_level": "EXPERT", "display_order": 0})
        monkeypatch.setitem(sys.modules, "playwright", None)
        with pytest.raises(RenderDependencyMissing) as exc_info:
            printer.generate_cv_pdf()
        assert "playwright install chromium" in str(exc_info.value)

    def test_writes_pdf_under_uploads(self, mongo_db, uploads_dir, monkeypatch):
        mongo_db["personalinfo"].insert_one({"_id": "profile", "name": "Ada Grey"})
        monkeypatch.setenv("PRINT_BASE_URL", "http://localhost:9000/")
        page = FakePage()
        monkeypatch.setattr(printer, "load_driver", lambda: fake_driver(FakeBrowser(page)))

        result = printer.generate_cv_pdf()

        assert page.visited == ["http://localhost:9000/print/cv"]
        assert result["filePath"].startswith("/uploads/cv/cv-")
        written = uploads_dir / "cv" / result["filePath"].rsplit("/", 1)[1]
        assert written.stat().st_size == result["fileSize"]


class TestGeneratePortfolioPdf:
    """Tests for generate_portfolio_pdf."""

    def test_unknown_portfolio_is_not_found(self, mongo_db, uploads_dir, no_browser):
        with pytest.raises(HTTPException) as exc_info:
            printer.generate_portfolio_pdf(str(ObjectId()))
        assert exc_info.value.status_code == 404
        assert no_browser == []

    def test_portfolio_without_content_is_empty(self, mongo_db, uploads_dir, make_portfolio, no_browser):
        with pytest.raises(EmptyDocumentError):
            printer.generate_portfolio_pdf(make_portfolio())
        assert no_browser == []

    def test_records_file_and_page_count(self, mongo_db, uploads_dir, make_project, make_portfolio, monkeypatch):
        """A generated PDF's path, size and page count are stored on the portfolio."""
        printed = []

        def fake_print(url, output):
            printed.append(url)
            output.write_bytes(b"%PDF-1.4 portfolio")
            return output.stat().st_size

        monkeypatch.setattr(printer, "print_url_to_pdf", fake_print)
        monkeypatch.delenv("PRINT_BASE_URL", raising=False)
        monkeypatch.delenv("PORT", raising=False)
        pid = make_portfolio([make_project(assets=[asset(order=i) for i in range(5)])])

        result = printer.generate_portfolio_pdf(pid)

        assert printed == [f"http://127.0.0.1:8000/print/portfolio/{pid}"]
        assert result == {"filePath": f"/uploads/portfolios/{pid}.pdf", "fileSize": 18}
        stored = mongo_db["portfolio"].find_one({"_id": ObjectId(pid)})
        assert stored["file_path"] == f"/uploads/portfolios/{pid}.pdf"
        assert stored["file_size"] == 18
        assert stored["total_pages"] == 3


class TestBrowserSession:
    """Browser lifecycle and failure mapping."""

    def test_missing_browser_binary_is_a_dependency_error(self, monkeypatch):
        monkeypatch.setattr(printer, "load_driver", lambda: fake_driver(
            launch_error="Executable doesn't exist at /ms-playwright/chromium/chrome"))
        with pytest.raises(RenderDependencyMissing):
            with printer.browser_session():
                pass

    def test_other_launch_errors_are_render_failures(self, monkeypatch):
        monkeypatch.setattr(printer, "load_driver", lambda: fake_driver(launch_error="crashed"))
        with pytest.raises(RenderFailure):
            with printer.browser_session():
                pass

    def test_navigation_failure_still_closes_browser(self, tmp_path, monkeypatch):
        browser = FakeBrowser(FakePage(fail_on_goto=True))
        monkeypatch.setattr(printer, "load_driver", lambda: fake_driver(browser))
        with pytest.raises(RenderFailure):
            printer.print_url_to_pdf("http://localhost/print/cv", tmp_path / "out.pdf")
        assert browser.closed is True

    def test_pdf_options(self, tmp_path, monkeypatch):
        """A4, backgrounds on and no extra PDF margin."""
        page = FakePage()
        browser = FakeBrowser(page)
        monkeypatch.setattr(printer, "load_driver", lambda: fake_driver(browser))
        size = printer.print_url_to_pdf("http://localhost/print/cv", tmp_path / "out.pdf")
        assert size == len(b"%PDF-1.4 test")
        assert page.options["format"] == "A4"
        assert page.options["print_background"] is True
        assert page.options["margin"]["top"] == "0mm"
        assert browser.closed is True


class SlowPage(FakePage):
    def wait_for_timeout(self, ms):
        time.sleep(0.05)


class CountingDriver:
    """Launches fake browsers and records the most open at once."""

    def __init__(self):
        self.open = 0
        self.peak = 0
        self.guard = threading.Lock()

    def launch(self, headless=True):
        with self.guard:
            self.open += 1
            self.peak = max(self.peak, self.open)
        driver = self

        class Browser(FakeBrowser):
            def close(self):
                with driver.guard:
                    driver.open -= 1

        return Browser(SlowPage())

    def module(self):
        @contextmanager
        def sync_playwright():
            yield types.SimpleNamespace(chromium=types.SimpleNamespace(launch=self.launch))

        return types.SimpleNamespace(sync_playwright=sync_playwright, Error=FakeError)


def run_in_threads(target, count):
    errors = []

    def run():
        try:
            target()
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=run) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return errors


class TestConcurrency:
    """Per-document serialization and the browser cap."""

    def test_same_portfolio_is_printed_one_at_a_time(self, mongo_db, uploads_dir, make_project,
                                                     make_portfolio, monkeypatch):
        guard = threading.Lock()
        active = []
        overlaps = []

        def slow_print(url, output):
            with guard:
                active.append(url)
                if len(active) > 1:
                    overlaps.append(len(active))
            time.sleep(0.05)
            output.write_bytes(b"%PDF")
            with guard:
                active.remove(url)
            return 4

        monkeypatch.setattr(printer, "print_url_to_pdf", slow_print)
        pid = make_portfolio([make_project()])

        errors = run_in_threads(lambda: printer.generate_portfolio_pdf(pid), 3)

        assert errors == []
        assert overlaps == []
        assert printer._document_locks == {}

    def test_browser_cap_is_respected(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MAX_BROWSERS", "1")
        monkeypatch.setattr(printer, "_browser_slots", None)
        driver = CountingDriver()
        monkeypatch.setattr(printer, "load_driver", driver.module)
        outputs = iter(tmp_path / f"{i}.pdf" for i in range(3))
        outputs_guard = threading.Lock()

        def print_one():
            with outputs_guard:
                output = next(outputs)
            printer.print_url_to_pdf("http://localhost/print/cv", output)

        errors = run_in_threads(print_one, 3)

        assert errors == []
        assert driver.peak == 1
        assert driver.open == 0

    def test_waiting_for_a_busy_document_times_out(self, mongo_db, uploads_dir, make_project,
                                                  make_portfolio, monkeypatch, no_browser):
        monkeypatch.setenv("PRINT_QUEUE_TIMEOUT_S", "0")
        pid = make_portfolio([make_project()])
        with printer.document_lock(f"portfolio:{pid}"):
            with pytest.raises(RenderBusy):
                printer.generate_portfolio_pdf(pid)
        assert no_browser == []
        assert printer._document_locks == {}

    def test_waiting_for_a_browser_times_out(self, monkeypatch):
        monkeypatch.setenv("MAX_BROWSERS", "1")
        monkeypatch.setenv("PRINT_QUEUE_TIMEOUT_S", "0")
        monkeypatch.setattr(printer, "_browser_slots", None)
        monkeypatch.setattr(printer, "load_driver", lambda: fake_driver(FakeBrowser(FakePage())))
        with printer.browser_slot():
            with pytest.raises(RenderBusy):
                with printer.browser_session():
                    pass

    def test_lock_entries_are_dropped_after_errors(self, mongo_db, uploads_dir, make_portfolio, no_browser):
        with pytest.raises(EmptyDocumentError):
            printer.generate_portfolio_pdf(make_portfolio())
        assert printer._document_locks == {}
