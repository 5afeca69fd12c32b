"""
Shared fixtures: an in-memory MongoDB, a temporary uploads root and an API client.
"""

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import database


@pytest.fixture
def mongo_db(monkeypatch):
    """Replace the module-level database with a fresh mongomock one."""
    db = mongomock.MongoClient()["portfolio_test"]
    monkeypatch.setattr(database, "db", db)
    return db


@pytest.fixture
def uploads_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setenv("UPLOADS_DIR", str(path))
    return path


@pytest.fixture
def client(mongo_db, uploads_dir):
    from main import app

    with TestClient(app) as test_client:
        yield test_client


def asset(asset_id=None, order=0, hero=False, file_name=None, **extra):
    asset_id = asset_id or str(ObjectId())
    record = {
        "id": asset_id,
        "asset_type": "IMAGE",
        "file_name": file_name if file_name is not None else f"{asset_id}.jpeg",
        "file_path": f"/uploads/projects/optimized/{asset_id}.jpeg",
        "mime_type": "image/jpeg",
        "display_order": order,
        "is_hero_image": hero,
    }
    record.update(extra)
    return record


@pytest.fixture
def make_project(mongo_db):
    """Insert a project document directly and return its id as a string."""
    def _make(**fields):
        doc = {
            "project_name": "Harbour Library",
            "project_type": "CULTURAL",
            "location": "Bristol",
            "year_start": 2019,
            "year_completion": 2022,
            "practice_name": "Field Studio",
            "role": "Project Architect",
            "brief_description": "A public library on the harbour front.",
            "responsibilities": [],
            "riba_stages": [],
            "software_used": [],
            "featured_priority": 5,
            "assets": [],
        }
        doc.update(fields)
        return str(mongo_db["project"].insert_one(doc).inserted_id)
    return _make


@pytest.fixture
def make_portfolio(mongo_db):
    def _make(project_ids=(), **fields):
        doc = {
            "portfolio_name": "Applications 2026",
            "portfolio_type": "FULL",
            "cv_included": False,
            "settings": {},
            "projects": [
                {"project_id": pid, "display_order": i, "included_assets": [], "hero_asset_id": None}
                for i, pid in enumerate(project_ids)
            ],
        }
        doc.update(fields)
        return str(mongo_db["portfolio"].insert_one(doc).inserted_id)
    return _make
