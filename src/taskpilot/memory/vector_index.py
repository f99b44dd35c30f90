# src/taskpilot/memory/vector_index.py

"""
Vector index over a ChromaDB persistent collection.

One collection per agent namespace, cosine space. The collection stores
vectors and flat metadata only; embeddings are produced by the Embedder port,
never by Chroma itself.

Every chromadb failure ends as Unavailable(reason): the index is a
best-effort capability and must not break task operations.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import chromadb
from chromadb.config import Settings as ChromaSettings

from ..llm.result import CapabilityResult, Ok, Unavailable

logger = logging.getLogger(__name__)

_COLLECTION_PREFIX = "tasks_"


@dataclass(frozen=True, slots=True)
class VectorMatch:
    item_id: str
    score: float
    metadata: dict[str, Any]


def collection_name(namespace: str) -> str:
    """Chroma names: 3-63 chars of [a-zA-Z0-9._-], alphanumeric at both ends."""
    safe = re.sub(r"[^a-zA-Z0-9_-]", "_", namespace.strip()) or "default"
    return (_COLLECTION_PREFIX + safe)[:63].rstrip("_-") or "tasks"


def _flat_metadata(metadata: dict[str, Any] | None) -> dict[str, str | int | float | bool]:
    # Chroma accepts scalar metadata values only (no None / nested values).
    out: dict[str, str | int | float | bool] = {}
    for key, value in (metadata or {}).items():
        if value is None:
            continue
        out[str(key)] = value if isinstance(value, (str, int, float, bool)) else str(value)
    return out


class ChromaVectorIndex:
    def __init__(
        self,
        persist_dir: str | Path,
        *,
        namespace: str,
        dimensions: int,
        client: Any = None,
    ) -> None:
        self._dimensions = int(dimensions)
        self._name = collection_name(namespace)

        if client is None:
            path = Path(persist_dir).expanduser()
            path.mkdir(parents=True, exist_ok=True)
            client = chromadb.PersistentClient(
                path=str(path),
                settings=ChromaSettings(anonymized_telemetry=False),
            )
        self._client = client
        self._collection = self._client.get_or_create_collection(
            name=self._name,
            metadata={"hnsw:space": "cosine"},
        )
        logger.info("ChromaVectorIndex ready collection=%s dims=%d", self._name, self._dimensions)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _check_dims(self, vector: list[float]) -> Unavailable | None:
        if len(vector) != self._dimensions:
            return Unavailable(f"dimension mismatch: expected {self._dimensions}, got {len(vector)}")
        return None

    def upsert(self, item_id: str, vector: list[float], metadata: dict[str, Any]) -> CapabilityResult[None]:
        mismatch = self._check_dims(vector)
        if mismatch is not None:
            return mismatch
        try:
            self._collection.upsert(
                ids=[str(item_id)],
                embeddings=[[float(x) for x in vector]],
                metadatas=[_flat_metadata(metadata)],
            )
        except Exception as e:
            logger.info("Vector upsert failed id=%s (%s)", item_id, e.__class__.__name__)
            return Unavailable(f"upsert failed: {e.__class__.__name__}")
        return Ok(None)

    def delete(self, item_id: str) -> CapabilityResult[None]:
        try:
            self._collection.delete(ids=[str(item_id)])
        except Exception as e:
            logger.info("Vector delete failed id=%s (%s)", item_id, e.__class__.__name__)
            return Unavailable(f"delete failed: {e.__class__.__name__}")
        return Ok(None)

    def query(self, vector: list[float], *, top_k: int = 5) -> CapabilityResult[list[VectorMatch]]:
        mismatch = self._check_dims(vector)
        if mismatch is not None:
            return mismatch
        try:
            n_results = min(max(0, int(top_k)), self._collection.count())
            if n_results == 0:
                return Ok([])
            found = self._collection.query(
                query_embeddings=[[float(x) for x in vector]],
                n_results=n_results,
                include=["metadatas", "distances"],
            )
        except Exception as e:
            logger.info("Vector query failed (%s)", e.__class__.__name__)
            return Unavailable(f"query failed: {e.__class__.__name__}")

        ids = (found.get("ids") or [[]])[0]
        distances = (found.get("distances") or [[]])[0]
        metadatas = (found.get("metadatas") or [[]])[0]

        matches: list[VectorMatch] = []
        for i, item_id in enumerate(ids):
            # cosine distance -> similarity
            distance = float(distances[i]) if i < len(distances) else 1.0
            meta = metadatas[i] if i < len(metadatas) and metadatas[i] else {}
            matches.append(VectorMatch(item_id=str(item_id), score=1.0 - distance, metadata=dict(meta)))
        return Ok(matches)
