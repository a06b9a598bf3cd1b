"""JSON-file document store.

Documents are addressed as ``collection/doc_id`` where the collection may be
nested (``families/f1/recipeData``). Each collection is one JSON file holding
``{doc_id: document}``; writes go through a temp file and an atomic move.
Methods are safe to call from worker threads (asyncio.to_thread).
"""
import json
import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from mealkit.infra.paths import DOCUMENTS_DIR

logger = logging.getLogger(__name__)


def split_path(path: str) -> Tuple[str, str]:
    '''"grocery_lists/u1_2025-01-06" -> ("grocery_lists", "u1_2025-01-06").'''
    collection, _, doc_id = path.strip('/').rpartition('/')
    if not collection or not doc_id:
        raise ValueError(f"Document path needs a collection and an id: {path!r}")
    return collection, doc_id


class DocumentStore:
    def __init__(self, root: Union[str, Path, None] = None):
        self.root = Path(root) if root is not None else DOCUMENTS_DIR
        self._lock = threading.RLock()

    def _collection_file(self, collection: str) -> Path:
        safe = collection.strip('/').replace('/', '__')
        return self.root / f"{safe}.json"

    def _load(self, collection: str) -> Dict[str, Any]:
        path = self._collection_file(collection)
        if not path.exists():
            return {}
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in collection %s: %s", collection, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _atomic_write(self, collection: str, docs: Dict[str, Any]):
        path = self._collection_file(collection)
        os.makedirs(path.parent, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".docs_", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(docs, tmp, indent=2, ensure_ascii=False)
            shutil.move(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

    # --- collection/id API ---

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self._load(collection).get(doc_id)
        return dict(doc) if isinstance(doc, dict) else None

    def set_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            docs = self._load(collection)
            docs[doc_id] = dict(data)
            self._atomic_write(collection, docs)

    def update_document(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        '''Shallow-merge updates into the document, creating it when missing.'''
        with self._lock:
            docs = self._load(collection)
            current = docs.get(doc_id) if isinstance(docs.get(doc_id), dict) else {}
            current.update(updates)
            docs[doc_id] = current
            self._atomic_write(collection, docs)
        return dict(current)

    def delete_document(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            docs = self._load(collection)
            if doc_id not in docs:
                return False
            del docs[doc_id]
            self._atomic_write(collection, docs)
        return True

    def get_collection(self, collection: str) -> List[Dict[str, Any]]:
        '''All documents of a collection, each with its "id" filled in.'''
        out = []
        for doc_id, doc in self._load(collection).items():
            if isinstance(doc, dict):
                item = dict(doc)
                item.setdefault("id", doc_id)
                out.append(item)
        return out

    # --- path API ---

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        return self.get_document(*split_path(path))

    def set(self, path: str, data: Dict[str, Any]) -> None:
        self.set_document(*split_path(path), data)


__all__ = ['DocumentStore', 'split_path']
