"""Keep AGENTS.md symlinks in sync with agents.config files."""
