"""Database models."""
from app.models.models import RevenueEventRow

__all__ = [
    "RevenueEventRow",
]
