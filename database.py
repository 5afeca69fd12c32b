"""
MongoDB access for the portfolio builder.

`db` is None when no DATABASE_URL / DATABASE_NAME is configured; helpers raise
a 500 in that case so the API still starts and reports the problem.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import MongoClient

from config import get_database_name, get_database_url

logger = logging.getLogger(__name__)

_client = None
db = None

_url = get_database_url()
_name = get_database_name()
if _url and _name:
    _client = MongoClient(_url)
    db = _client[_name]

SETTINGS_ID = "global"
PROFILE_ID = "profile"
DEFAULT_MARGINS = {"top": 15, "bottom": 15, "left": 15, "right": 15}


def now() -> datetime:
    return datetime.now(timezone.utc)


def coll_name(model_cls) -> str:
    return model_cls.__name__.lower()


def get_collection(name: str):
    if db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return db[name]


def to_oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid ID")


def as_serializable(doc: Optional[Dict[str, Any]]):
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    # Convert datetimes to isoformat
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            d[k] = v.isoformat()
    return d


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    data_dict["created_at"] = now()
    data_dict["updated_at"] = now()
    result = get_collection(collection_name).insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None,
                  limit: Optional[int] = None, sort: Optional[list] = None) -> List[dict]:
    cursor = get_collection(collection_name).find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


# Generic CRUD helpers

def create_item(model: BaseModel):
    collection = coll_name(model.__class__)
    new_id = create_document(collection, model)
    doc = get_collection(collection).find_one({"_id": ObjectId(new_id)})
    return as_serializable(doc)


def get_item(model_cls, id_str: str, label: str = "Not found"):
    doc = get_collection(coll_name(model_cls)).find_one({"_id": to_oid(id_str)})
    if not doc:
        raise HTTPException(status_code=404, detail=label)
    return doc


def list_items(model_cls, limit: Optional[int] = None, filters: Dict[str, Any] = None,
               sort: Optional[list] = None):
    docs = get_documents(coll_name(model_cls), filters or {}, limit, sort)
    return [as_serializable(d) for d in docs]


def update_item(model_cls, id_str: str, data: Dict[str, Any]):
    collection = get_collection(coll_name(model_cls))
    res = collection.update_one({"_id": to_oid(id_str)}, {"$set": {**data, "updated_at": now()}})
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Not found")
    doc = collection.find_one({"_id": to_oid(id_str)})
    return as_serializable(doc)


def delete_item(model_cls, id_str: str):
    res = get_collection(coll_name(model_cls)).delete_one({"_id": to_oid(id_str)})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Not found")
    return {"deleted": True}


# Singletons

def default_app_settings() -> dict:
    return {"color_scheme": "classic", "margins": dict(DEFAULT_MARGINS)}


def init_singletons() -> None:
    """Create the global settings document once; safe to run on every start."""
    if db is None:
        logger.warning("Database not configured; skipping settings initialisation")
        return
    db["appsettings"].update_one(
        {"_id": SETTINGS_ID},
        {"$setOnInsert": {**default_app_settings(), "created_at": now(), "updated_at": now()}},
        upsert=True,
    )
    logger.info("Global settings initialised")


def get_app_settings() -> Optional[dict]:
    return get_collection("appsettings").find_one({"_id": SETTINGS_ID})


def get_personal_info() -> Optional[dict]:
    return get_collection("personalinfo").find_one({"_id": PROFILE_ID})
