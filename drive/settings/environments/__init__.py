"""Environment-specific settings layered over the shared components."""
