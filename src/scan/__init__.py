"""Document discovery."""
