"""``rich`` ライブラリを使用した構造化ロギングユーティリティ。

コンソールには ``RichHandler`` で出力し、必要に応じて移行ログをプレーンテキストの
ファイルにも書き出す (ページ単位の進捗やフィールドコピー失敗の記録を残すため)。
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

LOGGER_NAME = "az_search_migrator"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(*, verbose: bool = False, log_file: str | Path | None = None) -> logging.Logger:
    """移行ツールのルートロガーを設定して返す。

    パラメータ
    ----------
    verbose:
        ``True`` の場合 DEBUG レベル (ページごとの進捗) まで出力する。
    log_file:
        指定された場合、同じログをこのファイルにも追記する。
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )
    # SDK の HTTP ログは冗長なので抑制する
    logging.getLogger("azure").setLevel(logging.WARNING)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if log_file:
        path = Path(log_file)
        already = any(
            isinstance(h, logging.FileHandler) and Path(h.baseFilename) == path.resolve()
            for h in logger.handlers
        )
        if not already:
            handler = logging.FileHandler(path, encoding="utf-8")
            handler.setFormatter(logging.Formatter(FILE_FORMAT))
            logger.addHandler(handler)
    return logger
