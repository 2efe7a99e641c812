"""API route modules."""
from api.routes import content, questions, variants

__all__ = ["content", "questions", "variants"]
