#!/usr/bin/env python3
"""
Create or update the database schema and optionally seed the catalogs from CSV.

Usage:
    python migrate_database.py [--vocabulary words.csv] [--sentences sentences.csv]

DATABASE_URL selects PostgreSQL; without it the local SQLite file is used.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from englishapp.db import init_db
from englishapp.db_config import get_database_config
from englishapp.errors import AppError
from englishapp.importing import SENTENCE_SCHEMA, VOCABULARY_SCHEMA, read_csv_file
from englishapp.speech_db import add_multiple_sentences
from englishapp.vocabulary_db import add_multiple_vocabulary


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the schema and seed catalogs from CSV.")
    parser.add_argument("--vocabulary", type=Path, help="Vocabulary CSV to import")
    parser.add_argument("--sentences", type=Path, help="Speech practice sentences CSV to import")
    return parser.parse_args()


def seed(csv_path: Path, schema, importer, label: str) -> bool:
    if not csv_path.exists():
        print(f"❌ {label} CSV not found at {csv_path}")
        return False
    batch = read_csv_file(str(csv_path), schema)
    if not batch:
        print(f"⚠️ No valid {label} rows in {csv_path}")
        return True
    result = importer(batch)
    print(f"✅ {label}: {len(batch)} processed, {result['count']} new rows")
    return True


def main() -> int:
    load_dotenv()
    args = parse_args()
    print(f"🚀 Migrating {get_database_config()['type']} database...")

    try:
        init_db()
        print("✅ Schema is up to date")

        ok = True
        if args.vocabulary:
            ok = seed(args.vocabulary, VOCABULARY_SCHEMA, add_multiple_vocabulary, 'Vocabulary') and ok
        if args.sentences:
            ok = seed(args.sentences, SENTENCE_SCHEMA, add_multiple_sentences, 'Sentences') and ok
    except AppError as exc:
        print(f"❌ Migration failed: {exc.message} ({exc.error})")
        return 1

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
