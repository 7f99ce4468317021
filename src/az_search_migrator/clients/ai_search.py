"""Azure AI Search クライアントラッパー。スキーマ操作とドキュメント転送用。"""

from __future__ import annotations

import logging
from typing import Any

from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import ResourceNotFoundError
from azure.search.documents import IndexDocumentsBatch, SearchClient
from azure.search.documents.indexes import SearchIndexClient
from azure.search.documents.indexes.models import SearchIndex

from az_search_migrator.config import SearchServiceConfig

logger = logging.getLogger("az_search_migrator.clients.ai_search")


class SearchServiceClientWrapper:
    """Azure AI Search SDK の高レベルラッパー。

    移行処理が使用する操作のみを提供する:
    - インデックススキーマの取得 / 存在確認 / 削除 / 作成
    - ドキュメント数の取得
    - ``top`` / ``skip`` によるページ単位の検索
    - アップロードアクションのバッチ送信

    リトライは行わない (SDK のデフォルト動作に従う)。
    """

    def __init__(self, config: SearchServiceConfig) -> None:
        self.config = config
        self._credential = self._build_credential()
        self._index_client = SearchIndexClient(
            endpoint=config.effective_endpoint,
            credential=self._credential,
            api_version=config.api_version,
        )
        self._search_clients: dict[str, SearchClient] = {}

    def _build_credential(self) -> Any:
        if self.config.use_entra_id:
            from azure.identity import DefaultAzureCredential
            return DefaultAzureCredential()
        return AzureKeyCredential(self.config.api_key)

    def _search_client(self, index_name: str | None) -> SearchClient:
        name = index_name or self.config.index_name
        client = self._search_clients.get(name)
        if client is None:
            client = SearchClient(
                endpoint=self.config.effective_endpoint,
                index_name=name,
                credential=self._credential,
                api_version=self.config.api_version,
            )
            self._search_clients[name] = client
        return client

    @property
    def index_name(self) -> str:
        return self.config.index_name

    def get_index(self, index_name: str | None = None) -> SearchIndex:
        """インデックス定義（スキーマ）の完全な情報を取得する。

        パラメータ
        ----------
        index_name:
            インデックス名。デフォルトは ``config.index_name``。
        """
        name = index_name or self.config.index_name
        logger.info("インデックス '%s' のスキーマを取得中...", name)
        return self._index_client.get_index(name)

    def index_exists(self, index_name: str | None = None) -> bool:
        name = index_name or self.config.index_name
        try:
            self._index_client.get_index(name)
        except ResourceNotFoundError:
            return False
        return True

    def delete_index(self, index_name: str | None = None) -> None:
        name = index_name or self.config.index_name
        logger.warning("インデックス '%s' を削除中...", name)
        self._index_client.delete_index(name)

    def create_index(self, index: SearchIndex) -> SearchIndex:
        logger.info("インデックス '%s' を作成中...", index.name)
        created = self._index_client.create_index(index)
        logger.info("インデックス '%s' 作成完了", index.name)
        return created

    def get_document_count(self, index_name: str | None = None) -> int:
        """インデックスのドキュメント数を返す。"""
        return self._search_client(index_name).get_document_count()

    def search_page(
        self,
        *,
        skip: int,
        top: int,
        order_by: list[str] | None = None,
        index_name: str | None = None,
    ) -> list[dict[str, Any]]:
        """ワイルドカード検索で 1 ページ分のドキュメントを取得する。

        返されるドキュメントには ``@search.score`` などのメタデータキーが
        含まれる場合がある。除去は呼び出し側で行う。
        """
        results = self._search_client(index_name).search(
            search_text="*",
            top=top,
            skip=skip,
            order_by=order_by,
        )
        return [dict(doc) for doc in results]

    def upload_documents(
        self,
        documents: list[dict[str, Any]],
        index_name: str | None = None,
    ) -> list[str]:
        """ドキュメントを 1 つのバッチとして ``upload`` アクションで送信する。

        サービスに拒否されたドキュメントのキーのリストを返す。
        """
        if not documents:
            return []

        batch = IndexDocumentsBatch()
        batch.add_upload_actions(documents)
        results = self._search_client(index_name).index_documents(batch)

        rejected = [r.key for r in results if not r.succeeded]
        for r in results:
            if not r.succeeded:
                logger.debug("アップロード拒否: key=%s (%s) %s", r.key, r.status_code, r.error_message)
        return rejected
