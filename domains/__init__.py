"""Domain modules for the ccusage Discord monitor."""
