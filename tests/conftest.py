"""移行ツールテストスイート共有フィクスチャ。"""

from __future__ import annotations

from typing import Any

import pytest
from azure.core.exceptions import ResourceNotFoundError


# ---------------------------------------------------------------------------
# Azure AI Search フィールド/インデックスのモックオブジェクト
# ---------------------------------------------------------------------------


class MockSearchField:
    """``azure.search.documents.indexes.models.SearchField`` のモック。"""

    def __init__(self, **kwargs: Any) -> None:
        self.name: str = kwargs.get("name", "")
        self.type: str = kwargs.get("type", "Edm.String")
        self.key: bool = kwargs.get("key", False)
        self.searchable: bool | None = kwargs.get("searchable", False)
        self.filterable: bool | None = kwargs.get("filterable", False)
        self.sortable: bool | None = kwargs.get("sortable", False)
        self.facetable: bool | None = kwargs.get("facetable", False)
        self.hidden: bool | None = kwargs.get("hidden", False)
        self.fields: list | None = kwargs.get("fields")


class MockSearchIndex:
    """``azure.search.documents.indexes.models.SearchIndex`` のモック。"""

    def __init__(self, name: str = "test-index", fields: list[MockSearchField] | None = None) -> None:
        self.name = name
        self.fields = fields or []


class FlakyDocument(dict):
    """キーは列挙されるが、値の取得に失敗するフィールドを持つドキュメント。"""

    def __init__(self, data: dict[str, Any], broken: set[str]) -> None:
        super().__init__(data)
        self.broken = broken

    def __getitem__(self, key: str) -> Any:
        if key in self.broken:
            raise KeyError(key)
        return super().__getitem__(key)


# ---------------------------------------------------------------------------
# 検索サービスのフェイク
# ---------------------------------------------------------------------------


class FakeSearchService:
    """:class:`SearchServiceClientWrapper` と同じ操作を持つインメモリ実装。"""

    def __init__(
        self,
        index_name: str,
        index: Any = None,
        documents: list[dict[str, Any]] | None = None,
        *,
        key_name: str = "id",
        reject_keys: set[str] | None = None,
    ) -> None:
        self.index_name = index_name
        self.index = index
        self.documents: list[dict[str, Any]] = list(documents or [])
        self.key_name = key_name
        self.reject_keys = reject_keys or set()
        self.calls: list[str] = []
        self.search_calls: list[dict[str, Any]] = []
        self.uploads: list[list[dict[str, Any]]] = []
        self.fail_on: set[str] = set()

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if op in self.fail_on:
            raise RuntimeError(f"{op} failed")

    def get_index(self, index_name: str | None = None) -> Any:
        self._check("get_index")
        if self.index is None:
            raise ResourceNotFoundError(f"index '{self.index_name}' not found")
        return self.index

    def index_exists(self, index_name: str | None = None) -> bool:
        self._check("index_exists")
        return self.index is not None

    def delete_index(self, index_name: str | None = None) -> None:
        self._check("delete_index")
        self.index = None
        self.documents = []

    def create_index(self, index: Any) -> Any:
        self._check("create_index")
        self.index = index
        return index

    def get_document_count(self, index_name: str | None = None) -> int:
        self._check("get_document_count")
        return len(self.documents)

    def search_page(
        self,
        *,
        skip: int,
        top: int,
        order_by: list[str] | None = None,
        index_name: str | None = None,
    ) -> list[dict[str, Any]]:
        self._check("search_page")
        self.search_calls.append({"skip": skip, "top": top, "order_by": order_by})
        return self.documents[skip:skip + top]

    def upload_documents(
        self,
        documents: list[dict[str, Any]],
        index_name: str | None = None,
    ) -> list[str]:
        self._check("upload_documents")
        self.uploads.append([dict(d) for d in documents])
        rejected = []
        for doc in documents:
            key = doc.get(self.key_name)
            if key in self.reject_keys:
                rejected.append(key)
                continue
            self.documents.append(dict(doc))
        return rejected


# ---------------------------------------------------------------------------
# フィクスチャ
# ---------------------------------------------------------------------------


def make_documents(count: int) -> list[dict[str, Any]]:
    return [
        {
            "id": f"doc-{i:04d}",
            "Title": f"Article {i}",
            "views": i * 10,
            "published": i % 2 == 0,
            "tags": ["news", f"t{i % 3}"],
        }
        for i in range(count)
    ]


@pytest.fixture()
def articles_index() -> MockSearchIndex:
    """スカラー、コレクション、複合型フィールドを含むインデックス。"""
    return MockSearchIndex(
        name="articles",
        fields=[
            MockSearchField(name="id", type="Edm.String", key=True, filterable=True, sortable=True),
            MockSearchField(name="Title", type="Edm.String", searchable=True, sortable=True),
            MockSearchField(name="views", type="Edm.Int32", filterable=True, sortable=True, facetable=True),
            MockSearchField(name="published", type="Edm.Boolean", filterable=True, hidden=True),
            MockSearchField(name="tags", type="Collection(Edm.String)", searchable=True, facetable=True),
            MockSearchField(
                name="author",
                type="Edm.ComplexType",
                searchable=None,
                filterable=None,
                sortable=None,
                facetable=None,
                hidden=None,
                fields=[
                    MockSearchField(name="name", type="Edm.String", searchable=True),
                    MockSearchField(name="email", type="Edm.String", hidden=True),
                ],
            ),
        ],
    )


@pytest.fixture()
def legacy_index() -> MockSearchIndex:
    """移行先に既に存在する、異なるスキーマのインデックス。"""
    return MockSearchIndex(
        name="articles",
        fields=[
            MockSearchField(name="id", type="Edm.String", key=True),
            MockSearchField(name="Title", type="Edm.String", searchable=False),
            MockSearchField(name="obsolete", type="Edm.Double"),
        ],
    )


@pytest.fixture()
def sample_documents() -> list[dict[str, Any]]:
    return make_documents(120)


@pytest.fixture()
def source_service(articles_index, sample_documents) -> FakeSearchService:
    return FakeSearchService("articles", articles_index, sample_documents)


@pytest.fixture()
def target_service() -> FakeSearchService:
    return FakeSearchService("articles")
