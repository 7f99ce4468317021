"""Post-migration verification: compare source and target document counts.

Indexing on the target is asynchronous, so the count is first read after a
settle delay and then re-polled with exponential backoff until it matches or
the maximum wait is spent. A matching count is a heuristic, not proof that
every document arrived intact.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from az_search_migrator.clients.ai_search import SearchServiceClientWrapper
from az_search_migrator.config import MigrationOptions

logger = logging.getLogger("az_search_migrator.verification")


@dataclass
class VerificationReport:
    """Result of the document count comparison."""

    expected: int
    actual: int
    failures: list[str] = field(default_factory=list)
    waited: float = 0.0
    attempts: int = 0

    @property
    def passed(self) -> bool:
        return self.expected == self.actual

    def lines(self) -> list[str]:
        if self.passed:
            return [f"ALL DOCUMENTS INDEXED! Found {self.actual} documents in the new index."]
        out = [f"Found {self.actual} documents in the new index"]
        if self.failures:
            out.append("The following were not indexed:")
            out.extend(self.failures)
        return out


class Verifier:
    """Waits for the target index to settle and compares its count with the expected one."""

    def __init__(
        self,
        target: SearchServiceClientWrapper,
        options: MigrationOptions | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.target = target
        self.options = options or MigrationOptions()
        self._sleep = sleep

    def verify(self, expected: int, failures: list[str] | None = None) -> VerificationReport:
        """Compare ``expected`` with the target count.

        Parameters
        ----------
        expected:
            Number of documents counted on the source.
        failures:
            Field names whose copy failed during document transfer.
        """
        opts = self.options
        waited = 0.0
        delay = opts.settle_delay
        attempts = 0

        logger.info("インデックス処理の完了を待機中 (%.1f 秒)...", delay)
        while True:
            if delay > 0:
                self._sleep(delay)
                waited += delay
            actual = self.target.get_document_count()
            attempts += 1
            logger.debug("移行先ドキュメント数: %d / %d (待機 %.1f 秒)", actual, expected, waited)

            remaining = opts.verify_max_wait - waited
            if actual == expected or remaining <= 0:
                break
            delay = min(max(delay * opts.verify_backoff, 1.0), remaining)

        report = VerificationReport(
            expected=expected,
            actual=actual,
            failures=list(failures or []),
            waited=waited,
            attempts=attempts,
        )
        if report.passed:
            logger.info("ドキュメント数一致: %d", actual)
        else:
            logger.error("ドキュメント数不一致: 移行元=%d, 移行先=%d", expected, actual)
        return report
