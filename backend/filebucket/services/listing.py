"""Folder-style listing over a bucket's flat key set."""
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from filebucket.db import queries
from filebucket.db.models import File
from filebucket.services.paths import normalize_prefix


@dataclass
class Listing:
    path: str
    files: list[File] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)


def split_level(keys_and_files: list[tuple[str, File]], prefix: str) -> tuple[list[File], list[str]]:
    """Partition rows one level below prefix into direct files and first-segment folders."""
    files: list[File] = []
    folders: set[str] = set()
    for key, file in keys_and_files:
        remainder = key[len(prefix):]
        if not remainder:
            continue
        head, sep, _ = remainder.partition("/")
        if sep:
            if head:
                folders.add(head)
        else:
            files.append(file)
    return files, sorted(folders)


async def list_namespace(db: AsyncSession, bucket_id: int, path: str | None) -> Listing:
    """Immediate children of path in the bucket. Ownership/archive checks belong to the caller."""
    normalized = normalize_prefix(path)
    prefix = f"{normalized}/" if normalized else ""
    rows = await queries.list_live_files_by_prefix(db, bucket_id, prefix)
    files, folders = split_level([(f.key, f) for f in rows], prefix)
    return Listing(path=normalized, files=files, folders=folders)
