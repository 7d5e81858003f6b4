"""metamind database layer."""

from metamind.db.connection import Database
from metamind.db.migrations import MIGRATIONS, run_migrations
from metamind.db.schema import initialize
from metamind.db.vectors import cosine_similarity, decode_vector, encode_vector

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "cosine_similarity",
    "decode_vector",
    "encode_vector",
]
