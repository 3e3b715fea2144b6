"""Core CLI plumbing: entry point, async runner, error handling."""
