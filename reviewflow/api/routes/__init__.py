"""API route modules."""

from . import admin, brand_voice, credits, health, responses, reviews

__all__ = ["admin", "brand_voice", "credits", "health", "responses", "reviews"]
