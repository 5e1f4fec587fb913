"""
Telemetry records produced by search sessions.

Key Types:
    SearchAnalytics: One search operation, from start to finalization
    MatchAnalytics: Per-match detail (score, reason, file stats, context)
    RankingFactor: A weighted signal describing search effectiveness
    EmbeddingAnalytics / DocumentEmbedding: Detail reported by embedding tools
    BenchConfig: Where the analysed documents come from

Every record validates itself on construction; out-of-range scores, weights
or line numbers raise ``ValueError``. ``to_dict()`` produces the camelCase
shape used by exports so that reports stay interchangeable with other tools
writing the same format.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

SEARCH_TYPES = ("grep", "embedding", "glob", "read_files")


def _check_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be between 0 and 1, got {value}")


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


class BenchMode(str, Enum):
    FOLDER = "folder"
    URL = "url"


@dataclass(slots=True)
class BenchConfig:
    """
    Source of the documents under analysis.

    In ``folder`` mode ``source`` is the directory itself. In ``url`` mode
    ``source`` is the remote location and ``download_path`` the local copy;
    fetching is left to the caller.
    """

    mode: BenchMode
    source: str
    download_path: str | None = None

    def __post_init__(self) -> None:
        self.mode = BenchMode(self.mode)
        if not self.source:
            raise ValueError("BenchConfig.source must not be empty")

    @property
    def analysis_path(self) -> str | None:
        if self.mode is BenchMode.URL:
            return self.download_path
        return self.source


@dataclass(slots=True)
class MatchAnalytics:
    file_path: str
    match_text: str
    match_reason: str
    line_number: int | None = None
    context_before: str = ""
    context_after: str = ""
    relevance_score: float | None = None
    file_size: int = 0
    file_last_modified: float = 0.0  # epoch milliseconds

    def __post_init__(self) -> None:
        if self.line_number is not None and self.line_number < 1:
            raise ValueError(f"line_number must be 1-based, got {self.line_number}")
        if self.relevance_score is not None:
            _check_unit_interval("relevance_score", self.relevance_score)
        if self.file_size < 0:
            raise ValueError("file_size must not be negative")

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "filePath": self.file_path,
                "lineNumber": self.line_number,
                "matchText": self.match_text,
                "contextBefore": self.context_before,
                "contextAfter": self.context_after,
                "relevanceScore": self.relevance_score,
                "matchReason": self.match_reason,
                "fileSize": self.file_size,
                "fileLastModified": self.file_last_modified,
            }
        )


@dataclass(slots=True)
class RankingFactor:
    factor: str
    weight: float
    value: float
    explanation: str
    impact: float | None = None

    def __post_init__(self) -> None:
        _check_unit_interval("weight", self.weight)
        if self.impact is None:
            self.impact = self.value * self.weight

    def to_dict(self) -> dict[str, Any]:
        return {
            "factor": self.factor,
            "weight": self.weight,
            "value": self.value,
            "impact": self.impact,
            "explanation": self.explanation,
        }


@dataclass(slots=True)
class DocumentEmbedding:
    file_path: str
    embedding: list[float]
    similarity_score: float
    chunk_index: int | None = None
    chunk_text: str | None = None
    content_preview: str | None = None
    token_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "filePath": self.file_path,
                "embedding": self.embedding,
                "similarityScore": self.similarity_score,
                "chunkIndex": self.chunk_index,
                "chunkText": self.chunk_text,
                "contentPreview": self.content_preview,
                "tokenCount": self.token_count,
            }
        )


@dataclass(slots=True)
class EmbeddingAnalytics:
    query_embedding: list[float]
    embedding_model: str
    embedding_time_ms: float
    document_embeddings: list[DocumentEmbedding] = field(default_factory=list)
    total_tokens_processed: int | None = None
    average_similarity: float | None = None

    def __post_init__(self) -> None:
        if self.embedding_time_ms < 0:
            raise ValueError("embedding_time_ms must not be negative")

    def top_documents(self, limit: int = 5) -> list[DocumentEmbedding]:
        return sorted(
            self.document_embeddings, key=lambda d: d.similarity_score, reverse=True
        )[:limit]

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "queryEmbedding": self.query_embedding,
                "documentEmbeddings": [d.to_dict() for d in self.document_embeddings],
                "embeddingModel": self.embedding_model,
                "embeddingTimeMs": self.embedding_time_ms,
                "totalTokensProcessed": self.total_tokens_processed,
                "averageSimilarity": self.average_similarity,
            }
        )


@dataclass(slots=True)
class SearchAnalytics:
    """
    Telemetry for one search operation.

    Created when a search starts; ``match_details`` and ``ranking_factors``
    only grow; ``execution_time_ms`` is filled in once, when the owning
    session completes.
    """

    query: str
    search_type: str
    target_path: str
    search_strategy: str
    timestamp: float = field(default_factory=lambda: time.time() * 1000)
    pattern: str | None = None
    execution_time_ms: float = 0.0
    results_found: int = 0
    files_scanned: int = 0
    match_details: list[MatchAnalytics] = field(default_factory=list)
    ranking_factors: list[RankingFactor] | None = None
    tool_decision_reason: str | None = None
    search_parameters: dict[str, Any] | None = None
    embedding_details: EmbeddingAnalytics | None = None

    def __post_init__(self) -> None:
        if self.search_type not in SEARCH_TYPES:
            raise ValueError(
                f"search_type must be one of {', '.join(SEARCH_TYPES)}, got {self.search_type!r}"
            )
        if self.files_scanned < 0 or self.results_found < 0:
            raise ValueError("counts must not be negative")

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "timestamp": self.timestamp,
                "query": self.query,
                "searchType": self.search_type,
                "targetPath": self.target_path,
                "pattern": self.pattern,
                "executionTimeMs": self.execution_time_ms,
                "resultsFound": self.results_found,
                "filesScanned": self.files_scanned,
                "matchDetails": [m.to_dict() for m in self.match_details],
                "embeddingDetails": (
                    self.embedding_details.to_dict() if self.embedding_details else None
                ),
                "searchStrategy": self.search_strategy,
                "rankingFactors": (
                    [f.to_dict() for f in self.ranking_factors]
                    if self.ranking_factors is not None
                    else None
                ),
                "toolDecisionReason": self.tool_decision_reason,
                "searchParameters": self.search_parameters,
            }
        )
