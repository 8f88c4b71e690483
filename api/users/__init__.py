"""User accounts and the permission model."""
