"""ftcrag rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from ftcrag.cli.errors import err_no_api_key
    console.print(err_no_api_key())
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key(env_var: str = "OPENAI_API_KEY") -> str:
    """--embed requested without a credential in the environment."""
    return (
        f"[red]Error:[/] --embed needs an embedding API key.\n"
        f"  Set:  export {env_var}=sk-...\n"
        "  Or drop --embed to use lexical scoring."
    )


def err_config(exc: Exception) -> str:
    """Config file invalid or contains a forbidden key."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {exc}\n"
        "  Fix ftcrag.yaml (or ~/.ftcrag/config.yaml) and retry."
    )


def err_init_failed(exc: Exception) -> str:
    """Initialization raised; the controller was reset."""
    return (
        f"[red]Error:[/] Initialization failed: {exc}\n"
        "  Nothing was published. Check network access and the cache path, then retry.\n"
        "  Run with --verbose for per-source details."
    )


def err_invalid_repo_url(url: str) -> str:
    """add-repo received something that is not a GitHub repository URL."""
    return (
        f"[red]Error:[/] Not a GitHub repository URL: '{url}'\n"
        "  Example:  ftcrag add-repo https://github.com/<owner>/<repo>"
    )


def err_output_path_unsafe(path: str) -> str:
    """--output path fails security validation."""
    return (
        f"[red]Error:[/] Output path is not allowed: '{path}'\n"
        "  Use a path within the current working directory."
    )


def err_no_cache(cache_path: str) -> str:
    """status found no snapshot on disk."""
    return (
        f"[yellow]No document cache at '{cache_path}'.[/]\n"
        "  Run:  ftcrag ingest"
    )
