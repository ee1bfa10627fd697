"""Minimal async stand-in for a motor collection, enough for repository tests."""
import asyncio
import copy
import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument


def _resolve(doc: Dict[str, Any], path: str) -> List[Any]:
    """Values found at a dotted path, descending into arrays like MongoDB."""
    values = [doc]
    for part in path.split("."):
        found = []
        for value in values:
            if isinstance(value, dict):
                if part in value:
                    found.append(value[part])
            elif isinstance(value, list):
                if part.isdigit():
                    if int(part) < len(value):
                        found.append(value[int(part)])
                else:
                    found.extend(item[part] for item in value if isinstance(item, dict) and part in item)
        values = found
    return values


def _candidates(values: List[Any]) -> List[Any]:
    out = []
    for value in values:
        out.append(value)
        if isinstance(value, list):
            out.extend(value)
    return out


def _match_operator(values: List[Any], op: str, arg: Any, condition: Dict[str, Any]) -> bool:
    candidates = _candidates(values)
    if op == "$exists":
        return bool(values) == bool(arg)
    if op == "$in":
        return any(c in arg for c in candidates)
    if op == "$nin":
        return not any(c in arg for c in candidates)
    if op == "$ne":
        return arg not in candidates
    if op == "$elemMatch":
        return any(isinstance(item, dict) and _matches(item, arg)
                   for value in values if isinstance(value, list) for item in value)
    if op == "$regex":
        flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
        return any(isinstance(c, str) and re.search(arg, c, flags) for c in candidates)
    if op == "$options":
        return True
    raise NotImplementedError(op)


def _matches(doc: Dict[str, Any], filter: Dict[str, Any]) -> bool:
    for key, condition in filter.items():
        if key == "$and":
            ok = all(_matches(doc, f) for f in condition)
        elif key == "$or":
            ok = any(_matches(doc, f) for f in condition)
        elif key == "$nor":
            ok = not any(_matches(doc, f) for f in condition)
        elif isinstance(condition, dict) and any(k.startswith("$") for k in condition):
            values = _resolve(doc, key)
            ok = all(_match_operator(values, op, arg, condition) for op, arg in condition.items())
        else:
            ok = condition in _candidates(_resolve(doc, key))
        if not ok:
            return False
    return True


class FakeInsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    def sort(self, *args, **kwargs):
        return self

    def skip(self, n: int):
        self._docs = self._docs[n:]
        return self

    def limit(self, n: int):
        self._docs = self._docs[:n]
        return self

    async def to_list(self, length=None):
        return [copy.deepcopy(d) for d in self._docs]


class FakeCollection:
    """
    Each operation yields to the event loop before touching the data and
    then completes without further suspension, so concurrent callers
    interleave between operations but each operation itself is atomic, as
    on a real server.
    """

    def __init__(self):
        self.docs: List[Dict[str, Any]] = []

    async def insert_one(self, doc: Dict[str, Any]):
        await asyncio.sleep(0)
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return FakeInsertResult(doc["_id"])

    async def find_one(self, filter: Dict[str, Any], projection: Optional[Dict[str, Any]] = None):
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, filter):
                return copy.deepcopy(doc)
        return None

    def find(self, filter: Optional[Dict[str, Any]] = None):
        return FakeCursor([d for d in self.docs if _matches(d, filter or {})])

    async def count_documents(self, filter: Dict[str, Any]) -> int:
        await asyncio.sleep(0)
        return sum(1 for d in self.docs if _matches(d, filter))

    async def find_one_and_update(self, filter, update, return_document=ReturnDocument.BEFORE):
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, filter):
                before = copy.deepcopy(doc)
                doc.update(copy.deepcopy(update.get("$set", {})))
                for key, inc in update.get("$inc", {}).items():
                    doc[key] = doc.get(key, 0) + inc
                return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before
        return None


class FakeDatabase:
    def __init__(self):
        self._collections: Dict[str, FakeCollection] = {}

    def __getattr__(self, name: str) -> FakeCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._collections.setdefault(name, FakeCollection())

    def __getitem__(self, name: str) -> FakeCollection:
        return getattr(self, name)
