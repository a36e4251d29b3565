"""Infrastructure layer: database models and session management."""
