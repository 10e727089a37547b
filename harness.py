"""
Interactive harness for testing tasks-vault without MCP integration.

Usage:
    python harness.py <VAULT_ROOT> [--exclude .git,.obsidian] [--global-filter "#task"]

Loads the vault into a TaskCache, runs a quick smoke test, then drops you
into a REPL where you can run queries against the index.
"""

import json
import sys
from pathlib import Path

# Add src/ to path so imports work
sys.path.insert(0, str(Path(__file__).parent / "src"))

from cache.task_cache import TaskCache
from events.events import Events
from query.runner import run_query
from settings import update_settings
from vault.file_vault import FileVault


def _print_result(result) -> None:
    if result.error:
        print(f"  Error: {result.error}")
        return
    count = sum(len(b) for b in result.task_blocks)
    print(f"  {len(result.task_blocks)} blocks, {count} tasks")
    for block in result.task_blocks:
        for task in block.tasks:
            print(f"    {task.path}: {task.to_file_line_string()}")


def smoke_test(cache: TaskCache) -> None:
    """Quick automated checks after loading."""
    st = cache.status()
    print("\n=== Smoke Test ===")
    print(f"  State:          {st['state']}")
    print(f"  Files indexed:  {st['files_indexed']}")
    print(f"  Task blocks:    {st['task_blocks']}")
    print(f"  Tasks:          {st['tasks']}")

    for source in ("not done\nlimit 5", "due before tomorrow\nnot done", "done\nsort by done reverse\nlimit 5"):
        print(f"\n  Query: {source!r}")
        _print_result(run_query(source, cache.get_tasks()))

    print("\n=== Smoke Test Complete ===\n")


def repl(cache: TaskCache) -> None:
    """Simple REPL for interactive exploration."""
    print("Interactive mode. Type 'help' for commands, 'quit' to exit.\n")

    commands = {
        "help":   "Show this help",
        "status": "Show cache status",
        "q":      "Run a one-line query; separate lines with ';'. Usage: q not done; sort by due",
        "query":  "Run a multi-line query, ended by an empty line",
        "file":   "Show task blocks of one document. Usage: file <path>",
        "reload": "Re-index the whole vault",
        "quit":   "Exit",
    }

    while True:
        try:
            line = input("tasks-vault> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not line:
            continue

        cmd, _, rest = line.partition(" ")
        cmd = cmd.lower()

        if cmd in ("quit", "exit"):
            break

        elif cmd == "help":
            for k, v in commands.items():
                print(f"  {k:8s} {v}")

        elif cmd == "status":
            print(json.dumps(cache.status(), indent=2, default=str))

        elif cmd == "q":
            source = "\n".join(part.strip() for part in rest.split(";"))
            _print_result(run_query(source, cache.get_tasks()))

        elif cmd == "query":
            lines = []
            while True:
                try:
                    query_line = input("  ... ")
                except (EOFError, KeyboardInterrupt):
                    break
                if not query_line.strip():
                    break
                lines.append(query_line)
            _print_result(run_query("\n".join(lines), cache.get_tasks()))

        elif cmd == "file":
            if not rest:
                print("Usage: file <path>")
                continue
            blocks = [b for b in cache.get_tasks() if b.path == rest.strip()]
            print(f"Found {len(blocks)} blocks:")
            for i, block in enumerate(blocks):
                for task in block.tasks:
                    print(f"  [{i}] {task.indentation}{task.to_string()}")

        elif cmd == "reload":
            cache.load_vault()
            print(f"  Reloaded: {cache.status()['task_blocks']} blocks")

        else:
            print(f"Unknown command: {cmd}. Type 'help' for available commands.")


def main():
    if len(sys.argv) < 2:
        print("Usage: python harness.py <VAULT_ROOT> [--exclude .git,.obsidian] [--global-filter TOKEN]")
        sys.exit(1)

    vault_root = Path(sys.argv[1]).resolve()
    if not vault_root.is_dir():
        print(f"Error: {vault_root} is not a directory")
        sys.exit(1)

    exclude_dirs = {".git", ".obsidian", "node_modules", ".trash"}
    args = sys.argv[2:]
    for i, arg in enumerate(args[:-1]):
        if arg == "--exclude":
            exclude_dirs = set(args[i + 1].split(","))
        elif arg == "--global-filter":
            update_settings(global_filter=args[i + 1])

    print(f"Loading vault from: {vault_root}")
    print(f"Exclude dirs: {exclude_dirs}")

    cache = TaskCache(FileVault(vault_root, exclude_dirs), Events())
    cache.load_vault()

    smoke_test(cache)
    repl(cache)

    print("Done.")


if __name__ == "__main__":
    main()
