"""Chunked codebase generation: plan, execute, run, report."""
