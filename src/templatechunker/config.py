"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from templatechunker.embedding.encoder import DEFAULT_MODEL
from templatechunker.index.storage import DEFAULT_COLLECTION

MIN_CHUNK_SIZE_FLOOR = 50


def _get_default_db_path() -> Path:
    """Get the default database path for the current working context."""
    # When running from a checkout, prefer local data/ if it exists
    local_db = Path("data/templatechunker.db")
    if local_db.exists():
        return local_db

    return Path.home() / ".templatechunker" / "templatechunker.db"


@dataclass(frozen=True, slots=True)
class ChunkingConfig:
    """Options for the chunk packer, fixed once the engine is built.

    ``max_chunk_size`` is measured in estimated JSON lines. ``min_chunk_size``
    is accepted for compatibility but is advisory only: no undersized chunk is
    ever merged into a neighbour. ``overlap_size`` is divided by ten to get the
    number of trailing fields carried into the next chunk.
    """

    max_chunk_size: int = 500
    min_chunk_size: int = 100
    overlap_size: int = 50
    part_label: str = "part"

    def __post_init__(self) -> None:
        if self.max_chunk_size < MIN_CHUNK_SIZE_FLOOR:
            raise ValueError(
                f"Chunk size must be at least {MIN_CHUNK_SIZE_FLOOR} lines "
                f"(got {self.max_chunk_size})"
            )
        if self.overlap_size < 0:
            raise ValueError(f"Overlap must not be negative (got {self.overlap_size})")


@dataclass(slots=True)
class AppConfig:
    db_path: Path | None = None
    model_name: str = DEFAULT_MODEL
    max_chunk_size: int = 500
    min_chunk_size: int = 100
    overlap_size: int = 50
    collection: str = DEFAULT_COLLECTION
    batch_size: int = 32

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = _get_default_db_path()

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.db_path is None:
            self.db_path = _get_default_db_path()
        if Path(self.db_path).is_absolute() or base_dir is None:
            return Path(self.db_path)
        return base_dir / self.db_path

    def chunking(self) -> ChunkingConfig:
        return ChunkingConfig(
            max_chunk_size=self.max_chunk_size,
            min_chunk_size=self.min_chunk_size,
            overlap_size=self.overlap_size,
        )
