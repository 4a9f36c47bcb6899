"""Agent definitions shipped with packagent (markdown + YAML frontmatter)."""
