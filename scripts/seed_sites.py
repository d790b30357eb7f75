"""
CLI helper to load construction sites from a JSON file into the configured database.

The file holds a list of objects shaped like the ``/registerSite`` body::

    [{"name": "Tower B", "email": "owner@example.com", "phone": "555-0100",
      "materials": {"bricks": {"stock": 500, "price": 0.4}},
      "location": {"type": "Point", "coordinates": [72.8777, 19.076]}}]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pydantic import ValidationError

from regain.config import get_settings
from regain.db import SiteRecord, SqlDbClient
from regain.schemas import SiteRegistration

logger = logging.getLogger(__name__)


def load_sites(path: Path) -> list[SiteRecord]:
    entries = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(entries, list):
        raise ValueError(f"{path} must contain a JSON list of sites")

    sites = []
    for index, entry in enumerate(entries):
        try:
            payload = SiteRegistration.model_validate(entry)
        except ValidationError as exc:
            raise ValueError(f"Site #{index} in {path} is invalid: {exc}") from exc
        sites.append(
            SiteRecord(
                name=payload.name,
                email=payload.email.lower(),
                phone=payload.phone,
                is_active=payload.is_active,
                materials={
                    name: material.model_dump()
                    for name, material in payload.materials.items()
                },
                longitude=payload.location.longitude,
                latitude=payload.location.latitude,
            )
        )
    return sites


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed ReGain sites")
    parser.add_argument("path", type=Path, help="JSON file with a list of sites")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Override REGAIN_DATABASE_URL",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the file without writing anything",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    sites = load_sites(args.path)
    logger.info("Loaded %d sites from %s", len(sites), args.path)
    if args.dry_run:
        return 0

    database_url = args.database_url or get_settings().database_url
    if not database_url:
        logger.error("No database configured; set REGAIN_DATABASE_URL")
        return 1

    db = SqlDbClient(database_url)
    for site in sites:
        db.create_site(site)
    logger.info("Inserted %d sites", len(sites))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
