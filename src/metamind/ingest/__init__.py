"""metamind ingest pipeline: chunker, markdown parser, local and wiki sources."""

from metamind.ingest.base import WordChunker
from metamind.ingest.markdown import MarkdownParser, ParsedDocument
from metamind.ingest.pipeline import IngestPipeline, SyncStatus
from metamind.ingest.scanner import FileEvent, LocalFile, scan_directory

__all__ = [
    "WordChunker",
    "MarkdownParser",
    "ParsedDocument",
    "IngestPipeline",
    "SyncStatus",
    "FileEvent",
    "LocalFile",
    "scan_directory",
]
