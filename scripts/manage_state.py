#!/usr/bin/env python3
"""
State Manager - list, inspect and clear the persisted engine documents.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis_engine.config import EngineSettings
from analysis_engine.state_store import StateStore

logger = logging.getLogger(__name__)


def list_documents(store: StateStore) -> None:
    names = store.list_documents()
    if not names:
        print(f"No persisted state in {store.state_dir}")
        return

    print(f"📁 Persisted state in {store.state_dir}:")
    for name in names:
        size_kb = store.path_for(name).stat().st_size / 1024
        print(f"   📄 {name:<15} {size_kb:8.1f} KB")


def show_document(store: StateStore, name: str) -> int:
    document = store.load(name)
    if document is None:
        print(f"❌ No readable state named '{name}'")
        return 1

    print(f"📊 {name}")
    for key, value in document.items():
        count = len(value) if isinstance(value, (dict, list)) else value
        print(f"   {key:<18} {count}")
    return 0


def clear_documents(store: StateStore, names: List[str]) -> None:
    for name in names or store.list_documents():
        if store.clear(name):
            print(f"   ✅ Cleared {name}")
        else:
            print(f"   ➖ Nothing to clear for {name}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main function with CLI interface."""
    parser = argparse.ArgumentParser(description="Inspect and manage persisted analysis state")
    parser.add_argument("--state-dir", type=Path, help="State directory (default: KACHE_STATE_DIR or data/state)")
    parser.add_argument("--list", "-l", action="store_true", help="List persisted documents")
    parser.add_argument("--show", "-s", type=str, help="Summarise one document, e.g. 'trends'")
    parser.add_argument("--dump", "-d", type=str, help="Print one document as JSON")
    parser.add_argument("--clear", "-c", nargs="*", help="Clear the named documents (all when none given)")

    args = parser.parse_args(argv)
    settings = EngineSettings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s | %(levelname)s | %(message)s")
    store = StateStore(args.state_dir or settings.state_dir)

    if args.show:
        return show_document(store, args.show)
    if args.dump:
        document = store.load(args.dump)
        if document is None:
            print(f"❌ No readable state named '{args.dump}'")
            return 1
        print(json.dumps(document, indent=2, ensure_ascii=False))
        return 0
    if args.clear is not None:
        clear_documents(store, args.clear)
        return 0

    # Default: list documents
    list_documents(store)
    return 0


if __name__ == "__main__":
    sys.exit(main())
