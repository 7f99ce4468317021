"""Example: Full migration with progress tracking.

Copies the schema, transfers every document page by page and verifies the
document count on the target.

Usage:
    python examples/02_migrate.py
"""

from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn

from az_search_migrator.clients.ai_search import SearchServiceClientWrapper
from az_search_migrator.config import MigrationConfig
from az_search_migrator.migrator import Migrator
from az_search_migrator.utils.logging import setup_logging

console = Console()


def main() -> None:
    setup_logging(verbose=True)

    config = MigrationConfig.from_yaml("config.yaml")
    config.validate()

    source = SearchServiceClientWrapper(config.source)
    target = SearchServiceClientWrapper(config.target)
    migrator = Migrator(config, source, target)

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("({task.completed}/{task.total} pages)"),
        console=console,
    ) as progress:
        task = progress.add_task("Migrating...", total=None)

        def on_progress(page: int, pages: int) -> None:
            progress.update(task, completed=page, total=pages)

        migrator.set_progress_callback(on_progress)
        result = migrator.run()

    console.print()
    if result.verification is not None:
        for line in result.verification.lines():
            console.print(line)


if __name__ == "__main__":
    main()
