"""Document transfer: page through the source index and re-upload every document.

Each page is fetched with a wildcard search using ``skip`` / ``top``, every
field of every document is copied into a new document, and the page is sent
to the target as a single batch of upload actions.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from az_search_migrator.clients.ai_search import SearchServiceClientWrapper
from az_search_migrator.config import MigrationOptions
from az_search_migrator.schema_transfer import FieldDescriptor

logger = logging.getLogger("az_search_migrator.document_transfer")

# Azure AI Search rejects $skip values above this
MAX_SKIP = 100_000

ProgressCallback = Callable[[int, int], None]


def page_count(total: int, page_size: int) -> int:
    """Number of pages needed to read ``total`` documents, ``page_size`` at a time."""
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    if total <= 0:
        return 0
    return math.ceil(total / page_size)


def copy_document(source: Mapping[str, Any], failures: list[str]) -> dict[str, Any]:
    """Copy every field of ``source`` into a new document.

    Keys whose value lookup fails are appended to ``failures``. Search
    metadata (``@search.score`` and friends) is not part of the document.
    """
    document: dict[str, Any] = {}
    for key in list(source.keys()):
        if key.startswith("@search."):
            continue
        try:
            document[key] = source[key]
        except KeyError:
            failures.append(key)
    return document


@dataclass
class DocumentTransferResult:
    """Counts and anomalies collected while paging through the source."""

    total_documents: int = 0
    pages: int = 0
    copied_documents: int = 0
    uploaded_documents: int = 0
    failures: list[str] = field(default_factory=list)
    rejected_keys: list[str] = field(default_factory=list)


class DocumentTransfer:
    """Copies all documents from the source index into the target index, one page per batch."""

    def __init__(
        self,
        source: SearchServiceClientWrapper,
        target: SearchServiceClientWrapper,
        options: MigrationOptions | None = None,
        *,
        key_field: FieldDescriptor | None = None,
    ) -> None:
        self.source = source
        self.target = target
        self.options = options or MigrationOptions()
        self.key_field = key_field
        self._progress_callback: ProgressCallback | None = None

    def set_progress_callback(self, callback: ProgressCallback) -> None:
        """Set a callback ``fn(page, pages)`` fired after each page."""
        self._progress_callback = callback

    def _order_by(self) -> list[str] | None:
        # Stable ordering keeps skip/top pages from overlapping
        if self.key_field is not None and self.key_field.sortable:
            return [f"{self.key_field.name} asc"]
        return None

    def _trace(self, document: dict[str, Any]) -> None:
        key = document.get(self.key_field.name) if self.key_field else None
        label = document.get(self.options.trace_field) if self.options.trace_field else None
        if label is not None:
            logger.info("Indexed %s (%s)", label, key)
        else:
            logger.info("Indexed %s", key)

    def transfer(self) -> DocumentTransferResult:
        result = DocumentTransferResult()
        page_size = self.options.page_size

        result.total_documents = self.source.get_document_count()
        result.pages = page_count(result.total_documents, page_size)
        logger.info("転送対象ドキュメント: %d 件 (%d ページ)", result.total_documents, result.pages)

        if not self.options.commit_documents:
            logger.info("[DRY RUN] ドキュメントのアップロードはスキップします")

        if (result.pages - 1) * page_size > MAX_SKIP:
            logger.warning(
                "skip が上限 %d を超えるページがあります。これらのページは取得できない可能性があります",
                MAX_SKIP,
            )

        order_by = self._order_by()
        batch: list[dict[str, Any]] = []

        for page in range(result.pages):
            documents = self.source.search_page(
                skip=page * page_size,
                top=page_size,
                order_by=order_by,
            )

            for source_doc in documents:
                document = copy_document(source_doc, result.failures)
                if self.options.full_trace:
                    self._trace(document)
                batch.append(document)

            result.copied_documents += len(batch)
            logger.debug("ページ %d/%d: %d ドキュメント", page + 1, result.pages, len(batch))

            if self.options.commit_documents:
                rejected = self.target.upload_documents(batch)
                result.rejected_keys.extend(rejected)
                result.uploaded_documents += len(batch) - len(rejected)

            batch.clear()

            if self._progress_callback:
                self._progress_callback(page + 1, result.pages)

        logger.info(
            "ドキュメント転送完了: %d 件コピー / %d 件アップロード",
            result.copied_documents,
            result.uploaded_documents,
        )
        if result.rejected_keys:
            logger.warning("サービスに拒否されたドキュメント: %d 件", len(result.rejected_keys))

        return result
