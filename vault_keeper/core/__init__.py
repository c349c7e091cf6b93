"""Core vault operations: paths, tags, links, edits and batch renames."""
