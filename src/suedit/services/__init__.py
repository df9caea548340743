"""Services used by the edit and cleanup commands."""
