from app.models.categories import Category
from app.models.places import Place
from app.models.reviews import Review

__all__ = ["Category", "Place", "Review"]
