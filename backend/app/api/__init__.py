"""API router exports."""
from app.api.revenue import router as revenue

__all__ = ["revenue"]
