"""Enums for model fields."""

from enum import Enum


class PostCategory(str, Enum):
    """Fixed set of categories a post can be filed under."""

    AGRICULTURE = "Agriculture"
    BUSINESS = "Business"
    EDUCATION = "Education"
    ENTERTAINMENT = "Entertainment"
    ART = "Art"
    INVESTMENT = "Investment"
    UNCATEGORIZED = "Uncategorized"
    WEATHER = "Weather"

    @classmethod
    def values(cls) -> list[str]:
        """Return all category names in declaration order."""
        return [category.value for category in cls]
