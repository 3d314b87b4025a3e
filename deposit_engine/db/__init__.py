"""ORM models package."""
