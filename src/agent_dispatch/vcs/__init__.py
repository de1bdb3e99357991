"""Version-control collaborator (git CLI)."""
