"""Read endpoints scoped to one project."""
