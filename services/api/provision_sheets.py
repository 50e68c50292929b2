"""
Sheets setup for the Ops Sheets API.

Creates every tab of every spreadsheet family with its header row, or adds
missing header columns to existing tabs (never relabels existing ones).

Run:
python provision_sheets.py            # ensure everything
python provision_sheets.py --dry-run  # only report what is missing
"""

import argparse
import logging
import sys

from core.codec import normalize_key
from core.errors import StoreError
from core.ranges import sheet_range
from core.schema import HeaderPolicy, SchemaRegistry, ensure_table, resolve_sheet_id
from models.tables import FAMILIES
from settings import get_settings

logger = logging.getLogger("provision_sheets")


def inspect(transport, document_id, schema) -> str:
    """'missing', 'ok', or 'needs N column(s)' for one table."""
    if resolve_sheet_id(transport, document_id, schema.name) is None:
        return "missing"
    rows = transport.get_values(document_id, sheet_range(schema.name, "1:1"))
    present = {normalize_key(h) for h in (rows[0] if rows else [])}
    missing = [h for h in schema.headers if h not in present]
    return f"needs {len(missing)} column(s): {missing}" if missing else "ok"


def provision(transport, documents, dry_run: bool = False) -> dict:
    """
    Ensure every table under the append policy.

    Returns:
        {"ok": n, "changed": n, "failed": n}
    """
    registry = SchemaRegistry(policy=HeaderPolicy.APPEND)
    summary = {"ok": 0, "changed": 0, "failed": 0}

    for family, schemas in FAMILIES.items():
        document_id = documents[family]
        logger.info(f"📄 {family}: {document_id}")
        for schema in schemas:
            try:
                state = inspect(transport, document_id, schema)
                if state == "ok":
                    logger.info(f"  ✓ '{schema.name}' up to date")
                    summary["ok"] += 1
                    continue
                if dry_run:
                    logger.info(f"  ⚠️  '{schema.name}' {state}")
                    summary["changed"] += 1
                    continue
                ensure_table(transport, document_id, schema, registry, policy=HeaderPolicy.APPEND)
                logger.info(f"  ✅ '{schema.name}' ({state}) fixed, {schema.width} columns")
                summary["changed"] += 1
            except StoreError as e:
                logger.error(f"  ✗ '{schema.name}': {e.message}")
                summary["failed"] += 1
    return summary


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create/verify every Ops Sheets tab")
    parser.add_argument("--dry-run", action="store_true", help="Report only, write nothing")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    from main import build_transport

    settings = get_settings()
    transport = build_transport(settings)
    summary = provision(transport, settings.document_ids(), dry_run=args.dry_run)

    logger.info("=" * 60)
    logger.info(
        f"Summary: {summary['ok']} up to date, {summary['changed']} "
        f"{'to change' if args.dry_run else 'created/updated'}, {summary['failed']} failed"
    )
    return 1 if summary["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
