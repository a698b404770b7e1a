#!/usr/bin/env python3
"""
Generate ZeroDB embeddings for the documentation tree.

Walks the docs directory, splits every page into heading sections and
upserts them into the ``documentation`` namespace in batches. Pages whose
checksum matches what ZeroDB already holds are skipped; changed pages have
their old sections deleted first.

Usage:
    python -m tools.generate_embeddings [--refresh] [--docs-dir pages]
"""

import argparse
import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from dotenv import load_dotenv

from api.auth_client import ZeroDBAuthClient
from api.store_client import ZeroDBStoreClient
from config.config import Config
from models.errors import PipelineError
from tools.docs_loader import MarkdownSource, discover_sources
from utils.logger import get_logger
from utils.retry import MAX_RETRIES, RETRY_BASE_DELAY_S, retry_async

logger = get_logger(__name__)

BATCH_SIZE = 10
DEFAULT_DOCS_DIR = "pages"
REQUIRED_FIELDS = ("zerodb_api_url", "zerodb_project_id", "zerodb_email", "zerodb_password")


@dataclass
class IngestionStats:
    discovered: int = 0
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    embedded: int = 0


def build_documents(source: MarkdownSource, checksum: str, meta, sections) -> list[dict[str, Any]]:
    """Store documents for one page; empty sections are dropped."""
    documents = []
    for index, section in enumerate(sections):
        # Newlines flattened for better embedding quality
        text = section.content.replace("\n", " ").strip()
        if not text:
            continue
        documents.append(
            {
                "id": f"{source.path}_section_{index}",
                "text": text,
                "metadata": {
                    "path": source.path,
                    "parent_path": source.parent_path,
                    "source": source.source,
                    "heading": section.heading,
                    "slug": section.slug,
                    "checksum": checksum,
                    "meta": meta,
                    "section_index": index,
                },
            }
        )
    return documents


class EmbeddingsGenerator:
    def __init__(
        self,
        config: Config,
        *,
        docs_dir: Path,
        refresh: bool = False,
        batch_size: int = BATCH_SIZE,
        retries: int = MAX_RETRIES,
        retry_base_delay_s: float = RETRY_BASE_DELAY_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.docs_dir = docs_dir
        self.refresh = refresh
        self.batch_size = batch_size
        self.retries = retries
        self.retry_base_delay_s = retry_base_delay_s
        self.auth_client = ZeroDBAuthClient(config, transport=transport)
        self.store = ZeroDBStoreClient(config, transport=transport)

    async def _retry(self, fn):
        return await retry_async(fn, retries=self.retries, base_delay_s=self.retry_base_delay_s)

    async def _existing_checksums(self, token: str) -> dict[str, str]:
        try:
            checksums = await self._retry(lambda: self.store.fetch_existing_checksums(token))
        except (PipelineError, httpx.HTTPError) as exc:
            # Falls back to re-processing every page
            logger.warning(
                "Could not fetch existing checksums, will process all documents",
                extra={"extra_fields": {"error": str(exc)}},
            )
            return {}
        logger.info(f"Found {len(checksums)} existing documents in ZeroDB")
        return checksums

    async def _delete_old_sections(self, token: str, path: str) -> None:
        try:
            await self._retry(lambda: self.store.delete_sections(token, path))
        except (PipelineError, httpx.HTTPError) as exc:
            logger.warning(
                f"Could not delete old sections for {path}",
                extra={"extra_fields": {"error": str(exc)}},
            )

    async def _flush(self, token: str, batch: list[dict[str, Any]], stats: IngestionStats) -> None:
        logger.info(f"Embedding and storing batch of {len(batch)} documents")
        stats.embedded += await self._retry(lambda: self.store.embed_and_store(token, batch))

    async def run(self) -> IngestionStats:
        stats = IngestionStats()

        token = await self._retry(self.auth_client.authenticate)
        logger.info("Successfully authenticated with ZeroDB")

        sources = discover_sources(self.docs_dir)
        stats.discovered = len(sources)
        logger.info(f"Discovered {len(sources)} pages")

        existing: dict[str, str] = {}
        if self.refresh:
            logger.info("Refresh flag set, re-generating all pages")
        else:
            existing = await self._existing_checksums(token)

        pending: list[dict[str, Any]] = []

        for source in sources:
            try:
                page = source.load()

                existing_checksum = existing.get(source.path)
                if not self.refresh and existing_checksum == page.checksum:
                    logger.info(f"[{source.path}] Unchanged (checksum match), skipping")
                    stats.skipped += 1
                    continue

                if existing_checksum and existing_checksum != page.checksum:
                    logger.info(f"[{source.path}] Document changed, deleting old sections")
                    await self._delete_old_sections(token, source.path)
                    stats.updated += 1
                else:
                    logger.info(f"[{source.path}] New document, processing {len(page.sections)} sections")

                pending.extend(build_documents(source, page.checksum, page.meta, page.sections))
                stats.processed += 1

                if len(pending) >= self.batch_size:
                    batch, pending = pending[: self.batch_size], pending[self.batch_size :]
                    await self._flush(token, batch, stats)
            except Exception as exc:  # noqa: BLE001
                stats.failed += 1
                logger.error(
                    f"Page '{source.path}' failed to process. It may need to be re-generated on next run.",
                    exc_info=exc,
                )

        if pending:
            await self._flush(token, pending, stats)

        logger.info(
            "Embedding generation complete",
            extra={"extra_fields": {**stats.__dict__, "namespace": self.store.namespace, "model": self.store.model}},
        )
        return stats


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate ZeroDB embeddings for the docs")
    parser.add_argument(
        "-r", "--refresh", action="store_true", help="Refresh all embeddings (ignore checksums)"
    )
    parser.add_argument("--docs-dir", default=DEFAULT_DOCS_DIR, help="Documentation root directory")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)
    config = Config.from_env()

    missing = config.missing(*REQUIRED_FIELDS)
    if missing:
        logger.warning(
            f"Environment variables {', '.join(missing)} are required: skipping embeddings generation"
        )
        print(f"Missing environment variables: {', '.join(missing)}; skipping embeddings generation")
        return 0

    generator = EmbeddingsGenerator(config, docs_dir=Path(args.docs_dir), refresh=args.refresh)
    try:
        stats = asyncio.run(generator.run())
    except Exception as exc:
        logger.error(f"Fatal error: {exc}", exc_info=exc)
        print(f"Fatal error: {exc}")
        return 1

    print("\n=== Embedding Generation Complete ===")
    print(f"Total pages discovered: {stats.discovered}")
    print(f"Pages processed: {stats.processed}")
    print(f"Pages updated: {stats.updated}")
    print(f"Pages skipped (unchanged): {stats.skipped}")
    print(f"Pages failed: {stats.failed}")
    print(f"Sections embedded: {stats.embedded}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
