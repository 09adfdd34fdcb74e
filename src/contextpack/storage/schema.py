"""Database schema for the local vector index."""

SCHEMA = """
-- Chunks table: one row per chunk, embedding stored alongside
CREATE TABLE IF NOT EXISTS chunks (
    id TEXT PRIMARY KEY,           -- "{source_id}:{chunk_index}"
    source_id TEXT NOT NULL,
    folder TEXT NOT NULL,
    file_name TEXT NOT NULL,
    chunk_index INTEGER NOT NULL,
    text TEXT NOT NULL,
    embedding BLOB NOT NULL
);

-- Indexes for efficient queries
CREATE INDEX IF NOT EXISTS idx_chunks_source ON chunks(source_id);
CREATE INDEX IF NOT EXISTS idx_chunks_folder ON chunks(folder);
"""
