import copy
from collections import defaultdict

import pytest
from bson import ObjectId
from pymongo import ReturnDocument

from app.db.mongodb import db


def _is_operator_dict(value):
    return isinstance(value, dict) and any(key.startswith("$") for key in value)


def _matches(document, query):
    for key, condition in query.items():
        if _is_operator_dict(condition):
            value = document.get(key)
            for operator, operand in condition.items():
                if operator == "$exists":
                    if (key in document) != bool(operand):
                        return False
                elif operator == "$gte":
                    if value is None or not value >= operand:
                        return False
                elif operator == "$lt":
                    if value is None or not value < operand:
                        return False
                else:
                    raise NotImplementedError(operator)
        elif document.get(key) != condition:
            return False
    return True


class FakeCollection:
    """In-memory stand-in for the parts of a Motor collection the app uses"""

    def __init__(self):
        self.documents = []

    async def create_index(self, keys, **kwargs):
        return "_".join(f"{field}_{direction}" for field, direction in keys)

    async def find_one(self, query):
        for document in self.documents:
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    async def insert_one(self, document):
        document = copy.deepcopy(document)
        document.setdefault("_id", ObjectId())
        self.documents.append(document)
        return document["_id"]

    async def count_documents(self, query):
        return sum(1 for document in self.documents if _matches(document, query))

    async def find_one_and_update(self, query, update, upsert=False, return_document=ReturnDocument.BEFORE):
        target = next((document for document in self.documents if _matches(document, query)), None)
        before = copy.deepcopy(target)

        if target is None:
            if not upsert:
                return None
            target = {key: copy.deepcopy(value) for key, value in query.items() if not _is_operator_dict(value)}
            target["_id"] = ObjectId()
            target.update(copy.deepcopy(update.get("$setOnInsert", {})))
            self.documents.append(target)

        for key, value in update.get("$set", {}).items():
            target[key] = copy.deepcopy(value)
        for key, value in update.get("$push", {}).items():
            items = value["$each"] if _is_operator_dict(value) else [value]
            target.setdefault(key, []).extend(copy.deepcopy(items))
        for key, condition in update.get("$pull", {}).items():
            target[key] = [item for item in target.get(key, []) if not _matches(item, condition)]

        if return_document == ReturnDocument.AFTER:
            return copy.deepcopy(target)
        return before


class FakeDatabase:
    def __init__(self):
        self.collections = defaultdict(FakeCollection)

    def __getitem__(self, name):
        return self.collections[name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self.collections[name]


@pytest.fixture
def fake_db(monkeypatch):
    fake = FakeDatabase()
    monkeypatch.setattr(db, "db", fake)
    return fake
