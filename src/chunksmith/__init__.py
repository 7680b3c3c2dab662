"""chunksmith — chunked codebase generation pipeline."""
