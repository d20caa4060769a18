from __future__ import annotations

"""CLI utility to upload Q/A pairs and general sources into the vector index."""

import argparse
import asyncio
import logging
from pathlib import Path

from qa_gateway.app.dependencies import close_resolver, get_ingestor
from qa_gateway.app.settings import settings
from qa_gateway.loaders.docx import DocxLoaderError, load_docx_file
from qa_gateway.loaders.google_docs import (
    GoogleDocsLoaderError,
    fetch_access_token,
    fetch_google_doc_text,
    load_service_account_credentials,
)
from qa_gateway.loaders.qa_json import QAJsonLoaderError, load_qa_pairs_json
from qa_gateway.loaders.text import load_text_file
from qa_gateway.rag.errors import ProviderError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Parse a Q:/A:/G: document (or a Q/A JSON list) and upload it."
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", type=Path, help="Local .txt or .docx document.")
    source.add_argument(
        "--google-doc",
        nargs="?",
        const=settings.google_docs_id,
        help="Google Docs document id (defaults to GOOGLE_DOCS_ID).",
    )
    source.add_argument("--qa-json", type=Path, help="JSON list of {question, answer} objects.")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Records per upsert batch (defaults to QA_INGEST_BATCH_SIZE).",
    )
    return parser


async def google_access_token() -> str:
    """Prefer a service-account key; fall back to a pre-issued access token."""
    if settings.google_service_account_file:
        credentials = load_service_account_credentials(settings.google_service_account_file)
        return await fetch_access_token(credentials)
    return settings.google_docs_access_token or ""


async def load_document_text(args: argparse.Namespace) -> str:
    if args.file is None:
        return await fetch_google_doc_text(args.google_doc or "", await google_access_token())
    if args.file.suffix.lower() == ".docx":
        return load_docx_file(args.file)
    return load_text_file(args.file)


async def run(args: argparse.Namespace) -> int:
    ingestor = get_ingestor()
    if args.batch_size is not None:
        ingestor.batch_size = args.batch_size
    try:
        if args.qa_json is not None:
            report = await ingestor.upload(load_qa_pairs_json(args.qa_json))
        else:
            report = await ingestor.ingest_document(await load_document_text(args))
    finally:
        await close_resolver()
    if report is None:
        print("No Q&A pairs found. Use 'Q:' and 'A:' prefixes for questions and answers.")
        return 1
    print(
        f"Uploaded {report.qa_pairs} Q&A pairs and {report.general_sources} general sources "
        f"in {report.batches} batches."
    )
    return 0


def main() -> None:
    """Run one ingestion pass using app settings."""
    args = build_parser().parse_args()
    if args.batch_size is not None and args.batch_size <= 0:
        raise SystemExit("--batch-size must be positive")
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    try:
        exit_code = asyncio.run(run(args))
    except (
        DocxLoaderError,
        GoogleDocsLoaderError,
        QAJsonLoaderError,
        ProviderError,
        OSError,
    ) as exc:
        raise SystemExit(f"Ingestion failed: {exc}") from exc
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
