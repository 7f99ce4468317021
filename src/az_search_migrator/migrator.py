"""Migration engine: schema -> documents -> verification.

The phases run strictly in sequence with no retry and no rollback. A failure
in the middle of the document phase leaves the target partially populated.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from az_search_migrator.clients.ai_search import SearchServiceClientWrapper
from az_search_migrator.config import MigrationConfig
from az_search_migrator.document_transfer import (
    DocumentTransfer,
    DocumentTransferResult,
    ProgressCallback,
)
from az_search_migrator.schema_transfer import (
    SchemaTransfer,
    SchemaTransferResult,
    describe_fields,
    find_key_field,
)
from az_search_migrator.verification import VerificationReport, Verifier

logger = logging.getLogger("az_search_migrator.migrator")


@dataclass
class MigrationResult:
    """Outcome of a full migration run, one entry per phase."""

    schema: SchemaTransferResult
    documents: DocumentTransferResult | None = None
    verification: VerificationReport | None = None
    aborted: bool = False

    @property
    def succeeded(self) -> bool:
        if self.aborted or not self.schema.succeeded:
            return False
        if self.verification is not None:
            return self.verification.passed
        return True


class Migrator:
    """Orchestrates the full migration between two Azure AI Search services."""

    def __init__(
        self,
        config: MigrationConfig,
        source: SearchServiceClientWrapper,
        target: SearchServiceClientWrapper,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.source = source
        self.target = target
        self._sleep = sleep
        self._progress_callback: ProgressCallback | None = None

    def set_progress_callback(self, callback: ProgressCallback) -> None:
        """Set a callback ``fn(page, pages)`` for per-page progress reporting."""
        self._progress_callback = callback

    def run(self) -> MigrationResult:
        options = self.config.options

        schema = SchemaTransfer(self.source, self.target, options).transfer()
        result = MigrationResult(schema=schema)

        if not schema.succeeded:
            if not options.continue_on_schema_failure:
                logger.error("スキーマ転送に失敗したため移行を中止します")
                result.aborted = True
                return result
            logger.warning("スキーマ転送に失敗しましたが、ドキュメント転送を続行します")

        fields = schema.fields
        if not fields:
            try:
                fields = describe_fields(self.source.get_index())
            except Exception as e:
                # キーフィールドが不明な場合はページを並び替えずに転送する
                logger.warning("移行元スキーマを取得できません。キー順の並び替えは行いません: %s", e)
                fields = []
        documents = DocumentTransfer(
            self.source,
            self.target,
            options,
            key_field=find_key_field(fields),
        )
        if self._progress_callback:
            documents.set_progress_callback(self._progress_callback)
        result.documents = documents.transfer()

        if not options.commit_documents:
            logger.info("[DRY RUN] アップロードを行っていないため検証はスキップします")
            return result

        verifier = Verifier(self.target, options, sleep=self._sleep)
        result.verification = verifier.verify(
            result.documents.total_documents,
            result.documents.failures,
        )
        return result
