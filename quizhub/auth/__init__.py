"""User accounts referenced by quiz assignments and attempts."""
