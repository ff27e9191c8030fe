"""
Catalog data models: books, authors and categories.

Built from library API responses by the catalog providers and sent back
(via to_dict) on create/update. A book's author and category may arrive as
nested objects or as bare ids with separate ``*_name`` fields; both shapes
are accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, List, Optional

from .fields import first_of, format_datetime, parse_datetime, parse_float, parse_int


@dataclass
class Category:
    """A book category."""

    id: Optional[int]
    name: str
    description: str = ""
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=parse_int(data.get("id")),
            name=data.get("name") or "",
            description=data.get("description") or "",
            is_active=first_of(data, "isActive", "is_active", default=True),
        )


@dataclass
class Author:
    """A book author as managed by library administrators."""

    id: Optional[int]
    """Server id (None for an author not yet created)."""

    name: str
    """Display name."""

    biography: str = ""
    """Free text; the API field is ``bio``."""

    photo: Optional[str] = None
    """Photo URL."""

    country: str = ""
    """The API field is ``nationality``."""

    birth_date: Optional[str] = None
    """YYYY-MM-DD."""

    death_date: Optional[str] = None
    """YYYY-MM-DD."""

    book_count: Optional[int] = None
    """Number of books by this author, when the server includes it."""

    is_active: bool = True

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the field names the library API expects."""
        return {
            "id": self.id,
            "name": self.name,
            "bio": self.biography or "",
            "photo": self.photo,
            "nationality": self.country or "",
            "birth_date": self.birth_date.split("T")[0] if self.birth_date else None,
            "death_date": self.death_date.split("T")[0] if self.death_date else None,
            "book_count": self.book_count,
            "is_active": self.is_active,
            "created_at": format_datetime(self.created_at),
            "updated_at": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Author":
        return cls(
            id=parse_int(data.get("id")),
            name=data.get("name") or "",
            biography=first_of(data, "biography", "bio", default=""),
            photo=data.get("photo"),
            country=first_of(data, "country", "nationality", default=""),
            birth_date=first_of(data, "birthDate", "birth_date"),
            death_date=first_of(data, "deathDate", "death_date"),
            book_count=parse_int(first_of(data, "bookCount", "book_count")),
            is_active=first_of(data, "isActive", "is_active", default=True),
            created_at=parse_datetime(first_of(data, "createdAt", "created_at")),
            updated_at=parse_datetime(first_of(data, "updatedAt", "updated_at")),
        )


def _related(data: Dict[str, Any], key: str, factory):
    """
    Build a nested Author/Category from an object, a bare id, or
    ``<key>_id``/``<key>_name`` fields. None when nothing is present.
    """
    value = data.get(key)
    if isinstance(value, dict):
        return factory.from_dict(value)
    if value is not None:
        return factory(id=parse_int(value), name=data.get(f"{key}_name") or "")
    if data.get(f"{key}_name") is not None or data.get(f"{key}_id") is not None:
        return factory(id=parse_int(data.get(f"{key}_id")), name=data.get(f"{key}_name") or "")
    return None


@dataclass
class Book:
    """
    A catalog book.

    Prices are kept as floats; the server sends decimal strings.
    """

    id: Optional[int]
    """Server id (None for a book not yet created)."""

    title: str
    """Title (some endpoints call it ``name``)."""

    description: str = ""
    author: Optional[Author] = None
    category: Optional[Category] = None

    price: Optional[float] = None
    """Purchase price."""

    borrow_price: Optional[float] = None
    """Price of one borrowing period."""

    quantity: Optional[int] = None
    """Copies owned by the library."""

    available_copies: Optional[int] = None
    """Copies currently on the shelf."""

    primary_image_url: Optional[str] = None
    images: List[str] = field(default_factory=list)

    average_rating: Optional[float] = None
    evaluations_count: Optional[int] = None
    borrow_count: Optional[int] = None

    # Flags
    is_active: bool = True
    is_new: Optional[bool] = None
    is_available: Optional[bool] = None
    is_available_for_borrow: Optional[bool] = None
    availability_status: Optional[str] = None

    # Discount
    original_price: Optional[float] = None
    discounted_price: Optional[float] = None
    discount_amount: Optional[float] = None
    discount_percentage: Optional[float] = None
    has_active_discount: bool = False

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_borrowed_out(self) -> bool:
        """At least one copy is currently lent out."""
        if self.available_copies is None or self.quantity is None:
            return False
        return self.available_copies < self.quantity

    @property
    def effective_price(self) -> Optional[float]:
        """Discounted price while a discount is active, else the list price."""
        if self.has_active_discount and self.discounted_price is not None:
            return self.discounted_price
        return self.price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "author": self.author.id if self.author else None,
            "author_name": self.author.name if self.author else None,
            "category": self.category.id if self.category else None,
            "category_name": self.category.name if self.category else None,
            "price": self.price,
            "borrow_price": self.borrow_price,
            "quantity": self.quantity,
            "available_copies": self.available_copies,
            "primary_image_url": self.primary_image_url,
            "images": list(self.images),
            "average_rating": self.average_rating,
            "evaluations_count": self.evaluations_count,
            "borrow_count": self.borrow_count,
            "is_active": self.is_active,
            "is_new": self.is_new,
            "is_available": self.is_available,
            "is_available_for_borrow": self.is_available_for_borrow,
            "availability_status": self.availability_status,
            "original_price": self.original_price,
            "discounted_price": self.discounted_price,
            "discount_amount": self.discount_amount,
            "discount_percentage": self.discount_percentage,
            "has_active_discount": self.has_active_discount,
            "created_at": format_datetime(self.created_at),
            "updated_at": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Book":
        images = first_of(data, "images", "additionalImages", "additional_images", default=[])
        return cls(
            id=parse_int(data.get("id")),
            title=first_of(data, "title", "name", default=""),
            description=data.get("description") or "",
            author=_related(data, "author", Author),
            category=_related(data, "category", Category),
            price=parse_float(data.get("price"), default=None),
            borrow_price=parse_float(first_of(data, "borrowPrice", "borrow_price"), default=None),
            quantity=parse_int(data.get("quantity")),
            available_copies=parse_int(first_of(data, "availableCopies", "available_copies")),
            primary_image_url=first_of(
                data, "primaryImageUrl", "primary_image_url", "coverUrl", "cover_url"
            ),
            images=[str(url) for url in images] if isinstance(images, list) else [],
            average_rating=parse_float(first_of(data, "averageRating", "average_rating"), default=None),
            evaluations_count=parse_int(first_of(data, "evaluationsCount", "evaluations_count")),
            borrow_count=parse_int(first_of(data, "borrowCount", "borrow_count")),
            is_active=first_of(data, "isActive", "is_active", default=True),
            is_new=first_of(data, "isNew", "is_new"),
            is_available=first_of(data, "isAvailable", "is_available"),
            is_available_for_borrow=first_of(data, "isAvailableForBorrow", "is_available_for_borrow"),
            availability_status=data.get("availability_status"),
            original_price=parse_float(data.get("original_price"), default=None),
            discounted_price=parse_float(data.get("discounted_price"), default=None),
            discount_amount=parse_float(data.get("discount_amount"), default=None),
            discount_percentage=parse_float(data.get("discount_percentage"), default=None),
            has_active_discount=bool(data.get("has_active_discount", False)),
            created_at=parse_datetime(first_of(data, "createdAt", "created_at")),
            updated_at=parse_datetime(first_of(data, "updatedAt", "updated_at")),
        )
