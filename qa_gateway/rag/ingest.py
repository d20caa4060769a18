from __future__ import annotations

"""Batch upload of Q/A pairs and general sources into the vector index."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from qa_gateway.rag.embeddings import EmbeddingProvider
from qa_gateway.rag.errors import ConfigurationError
from qa_gateway.rag.parser import parse_document
from qa_gateway.rag.types import GeneralSource, QAPair, StoredRecord
from qa_gateway.vectorstore.base import VectorIndex

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10


@dataclass(frozen=True)
class IngestReport:
    qa_pairs: int
    general_sources: int
    batches: int

    @property
    def total(self) -> int:
        return self.qa_pairs + self.general_sources


@dataclass
class QAIngestor:
    """Embed records and upsert them in fixed-size batches.

    IDs are positional per run (``q0``, ``q1``, ... and ``g0``, ``g1``, ...),
    so a re-run overwrites records from position zero.
    """
    embedder: EmbeddingProvider
    index: VectorIndex
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ConfigurationError("Ingestion batch size must be positive")

    async def _upload(self, prefix: str, texts: list[str], metadata: list[dict]) -> int:
        batches = 0
        for offset in range(0, len(texts), self.batch_size):
            batch_texts = texts[offset : offset + self.batch_size]
            embeddings = await asyncio.gather(*(self.embedder.embed(text) for text in batch_texts))
            records = [
                StoredRecord(
                    id=f"{prefix}{offset + position}",
                    embedding=embedding,
                    metadata=metadata[offset + position],
                )
                for position, embedding in enumerate(embeddings)
            ]
            await self.index.upsert(records)
            batches += 1
            logger.info(
                "ingest_batch_uploaded",
                extra={"prefix": prefix, "offset": offset, "size": len(records)},
            )
        return batches

    async def upload(
        self,
        qa_pairs: Sequence[QAPair],
        general_sources: Sequence[GeneralSource] = (),
    ) -> IngestReport:
        """Upload Q/A pairs (embedded by question) then general sources."""
        qa_batches = await self._upload(
            "q",
            [pair.question for pair in qa_pairs],
            [pair.to_metadata() for pair in qa_pairs],
        )
        general_batches = await self._upload(
            "g",
            [source.content for source in general_sources],
            [source.to_metadata() for source in general_sources],
        )
        report = IngestReport(
            qa_pairs=len(qa_pairs),
            general_sources=len(general_sources),
            batches=qa_batches + general_batches,
        )
        logger.info(
            "ingest_complete",
            extra={
                "qa_pairs": report.qa_pairs,
                "general_sources": report.general_sources,
                "batches": report.batches,
            },
        )
        return report

    async def ingest_document(self, text: str) -> IngestReport | None:
        """Parse document text and upload it; skip documents without Q/A pairs."""
        parsed = parse_document(text)
        if not parsed.qa_pairs:
            logger.warning(
                "ingest_skipped_no_qa_pairs",
                extra={"general_sources": len(parsed.general_sources)},
            )
            return None
        return await self.upload(parsed.qa_pairs, parsed.general_sources)
