"""CLI interface for the Azure AI Search index migration tool.

Usage:
    az-search-migrate migrate --config config.yaml [--dry-run]
    az-search-migrate schema  --config config.yaml --output diff.json
    az-search-migrate verify  --config config.yaml
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn, TimeRemainingColumn

from az_search_migrator import __version__
from az_search_migrator.config import ConfigError, MigrationConfig
from az_search_migrator.utils.logging import setup_logging

console = Console()


def _load_config(config_path: str) -> MigrationConfig:
    """Load and validate configuration."""
    path = Path(config_path)
    if not path.exists():
        console.print(f"[red]設定ファイルが見つかりません: {path}[/red]")
        sys.exit(1)
    cfg = MigrationConfig.from_yaml(path)
    try:
        cfg.validate()
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    return cfg


def _build_clients(cfg: MigrationConfig):
    from az_search_migrator.clients.ai_search import SearchServiceClientWrapper

    return SearchServiceClientWrapper(cfg.source), SearchServiceClientWrapper(cfg.target)


@click.group()
@click.version_option(__version__)
@click.option("--verbose", "-v", is_flag=True, help="詳細ログを出力")
@click.option("--log-file", type=click.Path(dir_okay=False), help="ログの追記先ファイル")
@click.pass_context
def main(ctx: click.Context, verbose: bool, log_file: str | None) -> None:
    """Azure AI Search インデックス移行ツール"""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose=verbose, log_file=log_file)


@main.command()
@click.option("--config", "-c", required=True, type=click.Path(), help="設定ファイルパス (YAML)")
@click.option("--dry-run", is_flag=True, help="インデックス作成とアップロードを行わずにシミュレーション")
@click.option("--no-commit-index", is_flag=True, help="移行先インデックスを削除・作成しない")
@click.option("--no-commit-documents", is_flag=True, help="ドキュメントをアップロードしない")
@click.option("--trace", is_flag=True, help="コピーした各ドキュメントをログ出力")
@click.option("--page-size", type=click.IntRange(min=1), default=None, help="1 ページあたりのドキュメント数")
@click.option("--continue-on-schema-failure", is_flag=True, help="スキーマ転送失敗時もドキュメント転送を続行")
@click.pass_context
def migrate(
    ctx: click.Context,
    config: str,
    dry_run: bool,
    no_commit_index: bool,
    no_commit_documents: bool,
    trace: bool,
    page_size: int | None,
    continue_on_schema_failure: bool,
) -> None:
    """インデックスのスキーマとドキュメントを移行

    移行先インデックスを削除して再作成し、全ドキュメントをページ単位でコピーした後、
    ドキュメント数を比較します。
    """
    from az_search_migrator.migrator import Migrator

    cfg = _load_config(config)
    opts = cfg.options
    if dry_run or no_commit_index:
        opts.commit_index = False
    if dry_run or no_commit_documents:
        opts.commit_documents = False
    if trace:
        opts.full_trace = True
    if page_size:
        opts.page_size = page_size
    if continue_on_schema_failure:
        opts.continue_on_schema_failure = True

    console.print("[bold]移行開始...[/bold]\n")
    console.print(f"  移行元: [cyan]{cfg.source.effective_endpoint}[/cyan] / {cfg.source.index_name}")
    console.print(f"  移行先: [cyan]{cfg.target.effective_endpoint}[/cyan] / {cfg.target.index_name}")
    console.print()

    source, target = _build_clients(cfg)
    migrator = Migrator(cfg, source, target)

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TextColumn("({task.completed}/{task.total} ページ)"),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task_id = progress.add_task("転送中...", total=None)

        def update_progress(page: int, pages: int) -> None:
            progress.update(task_id, completed=page, total=pages)

        migrator.set_progress_callback(update_progress)
        result = migrator.run()

    console.print()
    schema = result.schema
    if schema.error:
        console.print(f"[red]インデックスの作成に失敗しました: {schema.error}[/red]")
    elif schema.skipped:
        console.print("[yellow]インデックスの作成はスキップされました[/yellow]")
    else:
        console.print(f"[green]インデックスをコピーしました[/green] ({len(schema.fields)} フィールド)")

    if result.aborted:
        console.print("[red bold]移行中止[/red bold]")
        sys.exit(1)

    docs = result.documents
    if docs is not None:
        console.print(
            f"  ドキュメント: {docs.copied_documents:,} コピー / "
            f"{docs.uploaded_documents:,} アップロード / {docs.total_documents:,} 合計"
        )
        if docs.rejected_keys:
            console.print(f"  [yellow]拒否されたドキュメント: {', '.join(docs.rejected_keys)}[/yellow]")

    if result.verification is not None:
        style = "green bold" if result.verification.passed else "red"
        for line in result.verification.lines():
            console.print(f"[{style}]{line}[/{style}]")
    elif docs is not None and docs.failures:
        console.print("The following were not indexed:")
        for name in docs.failures:
            console.print(name)

    if not result.succeeded:
        sys.exit(1)


@main.command()
@click.option("--config", "-c", required=True, type=click.Path(), help="設定ファイルパス (YAML)")
@click.option("--output", "-o", type=click.Path(), help="差分の出力先 (JSON)")
@click.pass_context
def schema(ctx: click.Context, config: str, output: str | None) -> None:
    """スキーマ差分のプレビュー (変更なし)

    移行元のフィールド定義と現在の移行先インデックスを比較し、削除・再作成で
    どのような変更が生じるかを表示します。
    """
    from az_search_migrator.schema_transfer import SchemaTransfer

    cfg = _load_config(config)
    source, target = _build_clients(cfg)
    diff = SchemaTransfer(source, target, cfg.options).preview()

    if not diff.target_exists:
        console.print(f"[yellow]移行先インデックス '{cfg.target.index_name}' は存在しません (新規作成)[/yellow]")
    elif diff.identical:
        console.print("[green]スキーマは一致しています[/green]")
    else:
        console.print(f"[yellow]移行先インデックス '{cfg.target.index_name}' は削除・再作成されます[/yellow]")

    for line in diff.lines():
        console.print(f"  {line}")

    if output:
        out_path = Path(output)
        out_path.write_text(json.dumps(
            {
                "source_index": cfg.source.index_name,
                "target_index": cfg.target.index_name,
                "target_exists": diff.target_exists,
                "added": diff.added,
                "removed": diff.removed,
                "changed": {
                    name: {attr: list(values) for attr, values in attrs.items()}
                    for name, attrs in diff.changed.items()
                },
                "order_changed": diff.order_changed,
            },
            indent=2,
            ensure_ascii=False,
        ))
        console.print(f"\n[green]差分を保存しました: {out_path}[/green]")


@main.command()
@click.option("--config", "-c", required=True, type=click.Path(), help="設定ファイルパス (YAML)")
@click.pass_context
def verify(ctx: click.Context, config: str) -> None:
    """移行元と移行先のドキュメント数を比較"""
    from az_search_migrator.verification import Verifier

    cfg = _load_config(config)
    cfg.options.settle_delay = 0.0
    cfg.options.verify_max_wait = 0.0
    source, target = _build_clients(cfg)

    report = Verifier(target, cfg.options).verify(source.get_document_count())
    style = "green bold" if report.passed else "red"
    for line in report.lines():
        console.print(f"[{style}]{line}[/{style}]")
    if not report.passed:
        console.print(f"  移行元: {report.expected} ドキュメント")
        sys.exit(1)
