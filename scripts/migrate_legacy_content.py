#!/usr/bin/env python3
"""
Data migration script to rewrite stored exam content in canonical form.

This script:
1. Loads every question (content + answer template) and section intro
2. Converts legacy values (bare strings, old editor math HTML) to segments
3. Writes back the re-serialized JSON when it differs from what is stored

Usage:
    python scripts/migrate_legacy_content.py [--dry-run]
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import argparse
import logging

from sqlalchemy import select

from api.database import SessionLocal
from api.models.db.exam import ExamSection, Question
from content import migrate_content, serialize_content
from core.logging_setup import setup_console_logging

log = logging.getLogger("migrate_legacy_content")


def migrate_value(value):
    """Return the canonical serialization of ``value`` (None stays None)."""
    if value is None:
        return None
    return serialize_content(migrate_content(value))


def migrate_rows(db, dry_run=False):
    """Rewrite content columns; returns the number of changed columns."""
    changed = 0

    for question in db.execute(select(Question)).scalars():
        for column in ("content", "answer_template"):
            current = getattr(question, column)
            migrated = migrate_value(current)
            if migrated is not None and migrated != current:
                changed += 1
                log.debug("Question %s.%s rewritten", question.id, column)
                if not dry_run:
                    setattr(question, column, migrated)

    for section in db.execute(select(ExamSection)).scalars():
        current = section.intro_content
        migrated = migrate_value(current)
        if migrated is not None and migrated != current:
            changed += 1
            log.debug("Section %s intro rewritten", section.id)
            if not dry_run:
                section.intro_content = migrated

    return changed


def migrate_content_columns(dry_run=False):
    """Main migration function."""
    db = SessionLocal()
    try:
        changed = migrate_rows(db, dry_run=dry_run)
        if dry_run:
            db.rollback()
            print(f"Dry run: {changed} columns would be rewritten")
            return True

        db.commit()
        print(f"Successfully rewrote {changed} content columns")
        return True

    except Exception as e:
        db.rollback()
        log.exception("Migration failed")
        print(f"ERROR: Migration failed: {e}")
        return False
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rewrite stored exam content")
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    setup_console_logging(logging.INFO)
    print("=== Legacy Content Migration ===\n")
    success = migrate_content_columns(dry_run=args.dry_run)
    sys.exit(0 if success else 1)
