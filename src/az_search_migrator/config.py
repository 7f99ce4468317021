"""移行ツールの設定モデル。

YAML ファイルおよび環境変数からの読み込みをサポートします。
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


class ConfigError(ValueError):
    """設定が不完全または不正な場合に送出される。"""


@dataclass
class SearchServiceConfig:
    """Azure AI Search サービス (移行元 / 移行先) の接続設定。"""

    endpoint: str = ""
    service_name: str = ""
    api_key: str = ""
    index_name: str = ""
    use_entra_id: bool = False
    api_version: str = "2024-07-01"

    def resolve(self, prefix: str) -> None:
        """明示的に設定されていない値を ``<PREFIX>_SEARCH_*`` 環境変数から解決する。"""
        self.endpoint = self.endpoint or os.environ.get(f"{prefix}_SEARCH_ENDPOINT", "")
        self.service_name = self.service_name or os.environ.get(f"{prefix}_SEARCH_SERVICE_NAME", "")
        self.api_key = self.api_key or os.environ.get(f"{prefix}_SEARCH_API_KEY", "")
        self.index_name = self.index_name or os.environ.get(f"{prefix}_SEARCH_INDEX_NAME", "")

    @property
    def effective_endpoint(self) -> str:
        if self.endpoint:
            return self.endpoint
        if self.service_name:
            return f"https://{self.service_name}.search.windows.net"
        return ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SearchServiceConfig:
        return cls(
            endpoint=raw.get("endpoint", ""),
            service_name=raw.get("service_name", ""),
            api_key=raw.get("api_key", ""),
            index_name=raw.get("index_name", ""),
            use_entra_id=raw.get("use_entra_id", False),
            api_version=raw.get("api_version", "2024-07-01"),
        )


@dataclass
class MigrationOptions:
    """移行の動作を制御するオプション。"""

    # 1 回の検索で全フィールドを取得できる安全なページサイズ (サービス側の制約)
    page_size: int = 50
    # False の場合、移行先インデックスを削除・作成せず差分のプレビューのみ行う
    commit_index: bool = True
    # False の場合、ドキュメントをコピーするがアップロードしない
    commit_documents: bool = True
    full_trace: bool = False
    trace_field: str = ""
    continue_on_schema_failure: bool = False
    # 検証前の待機 (秒) とカウント一致までのポーリング上限
    settle_delay: float = 5.0
    verify_max_wait: float = 30.0
    verify_backoff: float = 2.0

    @property
    def dry_run(self) -> bool:
        return not self.commit_index and not self.commit_documents


@dataclass
class MigrationConfig:
    """トップレベルの移行設定。"""

    source: SearchServiceConfig = field(default_factory=SearchServiceConfig)
    target: SearchServiceConfig = field(default_factory=SearchServiceConfig)
    options: MigrationOptions = field(default_factory=MigrationOptions)

    def resolve(self) -> None:
        self.source.resolve("SOURCE")
        self.target.resolve("TARGET")
        # 移行先インデックス名の省略時は移行元と同名にする
        if not self.target.index_name:
            self.target.index_name = self.source.index_name

    def validate(self) -> None:
        """必須項目の欠落を検出し、:class:`ConfigError` を送出する。"""
        missing: list[str] = []
        for section, svc in (("source", self.source), ("target", self.target)):
            if not svc.effective_endpoint:
                missing.append(f"{section}.endpoint")
            if not svc.api_key and not svc.use_entra_id:
                missing.append(f"{section}.api_key")
            if not svc.index_name:
                missing.append(f"{section}.index_name")
        if missing:
            raise ConfigError("必須設定が不足しています: " + ", ".join(missing))
        if self.options.page_size <= 0:
            raise ConfigError(f"page_size は正の整数である必要があります: {self.options.page_size}")

    @classmethod
    def from_yaml(cls, path: str | Path) -> MigrationConfig:
        """YAML ファイルから設定を読み込む。"""
        with open(path) as f:
            raw = yaml.safe_load(f) or {}

        config = cls()
        config.source = SearchServiceConfig.from_dict(raw.get("source", {}))
        config.target = SearchServiceConfig.from_dict(raw.get("target", {}))

        opts = raw.get("options", {})
        config.options = MigrationOptions(
            page_size=opts.get("page_size", 50),
            commit_index=opts.get("commit_index", True),
            commit_documents=opts.get("commit_documents", True),
            full_trace=opts.get("full_trace", False),
            trace_field=opts.get("trace_field", ""),
            continue_on_schema_failure=opts.get("continue_on_schema_failure", False),
            settle_delay=opts.get("settle_delay", 5.0),
            verify_max_wait=opts.get("verify_max_wait", 30.0),
            verify_backoff=opts.get("verify_backoff", 2.0),
        )

        config.resolve()
        return config

    def to_dict(self) -> dict[str, Any]:
        """辞書にシリアライズする (ロギング用)。"""
        from dataclasses import asdict

        d = asdict(self)
        # シークレットをマスク
        for section in ("source", "target"):
            if d[section]["api_key"]:
                d[section]["api_key"] = "***"
        return d
