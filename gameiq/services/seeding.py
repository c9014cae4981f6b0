"""Seed the question catalog from <sport>__<position>_core.json files."""
import logging
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from gameiq.schemas.question import CatalogFileSchema
from gameiq.services.catalog import QuestionCatalog, normalize_key

logger = logging.getLogger(__name__)

CORE_FILE_SUFFIX = "_core.json"


def parse_catalog_file_name(file_name: str) -> tuple[str, str]:
    """'basketball__point-guard_core.json' -> ('basketball', 'point-guard')."""
    if not file_name.endswith(CORE_FILE_SUFFIX):
        raise ValueError(f"Invalid file name format: {file_name}. Expected: sport__position_core.json")
    parts = file_name[: -len(CORE_FILE_SUFFIX)].split("__")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Invalid file name format: {file_name}. Expected: sport__position_core.json")
    return normalize_key(parts[0]), normalize_key(parts[1])


async def import_catalog_file(db: AsyncSession, path: Path) -> int:
    """Import one file; questions already present (by external id) are skipped."""
    sport, position = parse_catalog_file_name(path.name)
    data = CatalogFileSchema.model_validate_json(path.read_text(encoding="utf-8"))
    if normalize_key(data.sport) != sport or normalize_key(data.position) != position:
        logger.warning(
            "File %s contains data for %s/%s but its name suggests %s/%s",
            path.name, data.sport, data.position, sport, position,
        )

    catalog = QuestionCatalog(db)
    known = await catalog.existing_external_ids(sport, position)
    added = 0
    for category_name, category in data.categories.items():
        for record in category.questions:
            if record.id in known:
                continue
            db.add(catalog.build_question(sport, position, record, category=category_name))
            known.add(record.id)
            added += 1
    await db.commit()
    return added


async def seed_question_bank(db: AsyncSession, directory: Path) -> int:
    """Import every core file under directory; a bad file is logged and skipped."""
    if not directory.is_dir():
        logger.warning("Catalog directory %s not found, nothing to seed", directory)
        return 0

    total = 0
    for path in sorted(directory.glob(f"*{CORE_FILE_SUFFIX}")):
        try:
            added = await import_catalog_file(db, path)
        except (OSError, ValueError):
            await db.rollback()
            logger.exception("Failed to import quiz file %s", path.name)
            continue
        logger.info("Imported %d new questions from %s", added, path.name)
        total += added
    return total
