"""CLI のテスト。"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from az_search_migrator import cli

from conftest import FakeSearchService

CONFIG_YAML = """\
source:
  endpoint: "https://legacy.search.windows.net"
  api_key: "src-key"
  index_name: "articles"
target:
  endpoint: "https://new.search.windows.net"
  api_key: "tgt-key"
options:
  settle_delay: 0
  verify_max_wait: 0
"""


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    return path


@pytest.fixture()
def services(monkeypatch, source_service, target_service):
    monkeypatch.setattr(cli, "_build_clients", lambda cfg: (source_service, target_service))
    return source_service, target_service


class TestMigrateCommand:
    def test_success(self, config_file, services) -> None:
        _, target = services
        result = CliRunner().invoke(cli.main, ["migrate", "-c", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "ALL DOCUMENTS INDEXED! Found 120 documents in the new index." in result.output
        assert len(target.documents) == 120

    def test_dry_run_touches_nothing(self, config_file, services) -> None:
        _, target = services
        result = CliRunner().invoke(cli.main, ["migrate", "-c", str(config_file), "--dry-run"])

        assert result.exit_code == 0, result.output
        assert target.index is None
        assert target.uploads == []

    def test_page_size_option(self, config_file, services) -> None:
        source, _ = services
        result = CliRunner().invoke(
            cli.main, ["migrate", "-c", str(config_file), "--page-size", "40"]
        )
        assert result.exit_code == 0, result.output
        assert len(source.search_calls) == 3
        assert source.search_calls[-1]["skip"] == 80

    @pytest.mark.parametrize("value", ["0", "-5"])
    def test_non_positive_page_size_rejected(self, config_file, services, value: str) -> None:
        source, target = services
        result = CliRunner().invoke(
            cli.main, ["migrate", "-c", str(config_file), "--page-size", value]
        )

        assert result.exit_code == 2
        assert "--page-size" in result.output
        assert target.calls == []
        assert source.search_calls == []

    def test_schema_failure_exits_non_zero(self, config_file, services) -> None:
        _, target = services
        target.fail_on.add("create_index")
        result = CliRunner().invoke(cli.main, ["migrate", "-c", str(config_file)])
        assert result.exit_code == 1

    def test_missing_config(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(cli.main, ["migrate", "-c", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1

    def test_incomplete_config(self, tmp_path: Path, monkeypatch) -> None:
        for var in ("SOURCE_SEARCH_API_KEY", "TARGET_SEARCH_API_KEY"):
            monkeypatch.delenv(var, raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("source:\n  index_name: articles\n")
        result = CliRunner().invoke(cli.main, ["migrate", "-c", str(path)])
        assert result.exit_code == 1


class TestSchemaCommand:
    def test_preview_writes_json(self, config_file, services, tmp_path: Path, legacy_index) -> None:
        _, target = services
        target.index = legacy_index
        out = tmp_path / "diff.json"
        result = CliRunner().invoke(
            cli.main, ["schema", "-c", str(config_file), "-o", str(out)]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text())
        assert data["target_exists"] is True
        assert data["removed"] == ["obsolete"]
        assert data["changed"]["Title"]["searchable"] == [False, True]
        assert "create_index" not in target.calls
        assert "delete_index" not in target.calls


class TestVerifyCommand:
    def test_mismatch_exits_non_zero(self, config_file, services) -> None:
        result = CliRunner().invoke(cli.main, ["verify", "-c", str(config_file)])
        assert result.exit_code == 1
        assert "Found 0 documents in the new index" in result.output

    def test_match(self, config_file, services, sample_documents) -> None:
        _, target = services
        target.documents = list(sample_documents)
        result = CliRunner().invoke(cli.main, ["verify", "-c", str(config_file)])
        assert result.exit_code == 0, result.output


class TestLogFileOption:
    def test_run_log_written_to_file(self, config_file, services, tmp_path: Path) -> None:
        log_path = tmp_path / "migration.log"
        try:
            result = CliRunner().invoke(
                cli.main, ["--log-file", str(log_path), "migrate", "-c", str(config_file)]
            )
            assert result.exit_code == 0, result.output
            text = log_path.read_text(encoding="utf-8")
            assert "az_search_migrator.document_transfer" in text
            assert "ドキュメント転送完了" in text
        finally:
            _remove_file_handlers()


def _remove_file_handlers() -> None:
    import logging

    logger = logging.getLogger("az_search_migrator")
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()
