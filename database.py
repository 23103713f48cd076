"""
MongoDB connection for the catalog store.

`db` is None when DATABASE_URL / DATABASE_NAME are not configured; callers
treat that as "store unavailable" rather than failing at import time.
"""

import os
from datetime import datetime, timezone
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import MongoClient

load_dotenv()

_client = None
db = None

database_url = os.getenv("DATABASE_URL")
database_name = os.getenv("DATABASE_NAME")

if database_url and database_name:
    _client = MongoClient(database_url)
    db = _client[database_name]


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a single document with created_at/updated_at stamps"""
    if db is None:
        raise RuntimeError("Database not available. Check DATABASE_URL and DATABASE_NAME.")

    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)

    now = datetime.now(timezone.utc)
    data_dict["created_at"] = now
    data_dict["updated_at"] = now

    result = db[collection_name].insert_one(data_dict)
    return str(result.inserted_id)
