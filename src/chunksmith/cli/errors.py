"""chunksmith rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from chunksmith.cli.errors import err_no_db
    console.print(err_no_db(".chunksmith.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from chunksmith.llm.client import provider_of


def err_no_api_key(model: str) -> str:
    """No API key for the provider of *model*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    provider = provider_of(model)
    env_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "cohere": "COHERE_API_KEY",
        "gemini": "GEMINI_API_KEY",
        "mistral": "MISTRAL_API_KEY",
        "azure": "AZURE_API_KEY",
    }
    env_var = env_map.get(provider, f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_no_db(db_path: str = ".chunksmith.db") -> str:
    """No database found."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  chunksmith init"
    )


def err_project_not_found(project_id: int) -> str:
    return (
        f"[red]Error:[/] Project {project_id} not found.\n"
        "  Run:  chunksmith project list"
    )


def err_chunk_not_found(project_id: int, chunk_id: str) -> str:
    return (
        f"[red]Error:[/] Chunk '{chunk_id}' not found in project {project_id}.\n"
        f"  Run:  chunksmith status {project_id}  to see all planned chunks."
    )


def err_not_planned(project_id: int) -> str:
    return (
        f"[red]Error:[/] Project {project_id} has no manifest yet.\n"
        f"  Run:  chunksmith plan {project_id}"
    )


def err_planning_failed(project_id: int, reason: str) -> str:
    return (
        f"[red]Error:[/] Planning failed for project {project_id}.\n"
        f"  Cause: {reason}\n"
        "  The previous plan (if any) was kept. Fix the cause and re-run:\n"
        f"    chunksmith plan {project_id}"
    )


def err_dependencies_unmet(project_id: int, chunk_id: str, unmet: list[str]) -> str:
    steps = "\n".join(f"    chunksmith execute {project_id} {dep}" for dep in unmet)
    return (
        f"[red]Error:[/] Chunk '{chunk_id}' depends on chunks that are not completed: "
        f"{', '.join(unmet)}\n"
        "  Complete them first:\n"
        f"{steps}"
    )


def err_chunk_failed(project_id: int, chunk_id: str, reason: str) -> str:
    return (
        f"[red]Error:[/] Chunk '{chunk_id}' failed.\n"
        f"  Cause: {reason}\n"
        f"  Retry:  chunksmith execute {project_id} {chunk_id}"
    )


def err_persistence(reason: str) -> str:
    return (
        f"[red]Error:[/] {reason}\n"
        "  Check that the database file is writable and not locked by another run."
    )


def err_config(reason: str) -> str:
    return f"[red]Error:[/] Invalid configuration.\n  {reason}"


def err_output_path_unsafe(path: str) -> str:
    """--export path fails security validation."""
    return (
        f"[red]Error:[/] Output path is not allowed: '{path}'\n"
        "  Use a path within the current working directory."
    )
