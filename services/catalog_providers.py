"""
Catalog providers: books, categories and authors.

The three providers share one shape (load a page, create, update, delete,
look up by id), so the list bookkeeping lives in CatalogProvider and each
subclass only supplies the endpoints and the model class.

Delete failures are stored in ``error`` already translated for the user
(see core.error_messages.describe_delete_error), since the server signals
the interesting cases (403, AUTHOR_HAS_BOOKS) only through message text.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from core.api_client import BookstoreAPIClient
from core.error_messages import describe_delete_error
from core.exceptions import AuthenticationError, BookstoreClientError
from models.catalog import Author, Book, Category
from models.fields import parse_int
from logging_config import get_logger
from .provider import BaseProvider


# Module logger
logger = get_logger(__name__)

T = TypeVar("T", Book, Category, Author)

AUTH_REQUIRED_MESSAGE = "Authentication required. Please log in first."

BOOK_STATUS_FILTERS = ("available", "unavailable", "borrowed")


class CatalogProvider(BaseProvider, Generic[T]):
    """
    Paged list of one catalog entity.

    Subclasses set ``entity`` ("book", "category", "author"), ``model``
    and implement the _api_* hooks.
    """

    entity = ""
    model: Any = None

    def __init__(self, client: BookstoreAPIClient, page_size: int = 10):
        super().__init__(client)
        self._items: List[T] = []
        self._current_page = 1
        self._total_pages = 1
        self._total_items = 0
        self._items_per_page = page_size

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def items(self) -> List[T]:
        return list(self._items)

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def total_pages(self) -> int:
        return self._total_pages

    @property
    def total_items(self) -> int:
        return self._total_items

    @property
    def items_per_page(self) -> int:
        return self._items_per_page

    def clear(self) -> None:
        self._items = []
        self._current_page = 1
        self._total_pages = 1
        self._total_items = 0
        super().clear()

    # -------------------------------------------------------------------------
    # Endpoint hooks
    # -------------------------------------------------------------------------

    def _api_get(self, item_id: int) -> Dict[str, Any]:
        raise NotImplementedError

    def _api_create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def _api_update(self, item_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def _api_delete(self, item_id: int) -> None:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Shared operations
    # -------------------------------------------------------------------------

    def _load(
        self,
        fetch: Callable[[], List[Dict[str, Any]]],
        page: int = 1,
        keep: Optional[Callable[[T], bool]] = None
    ) -> bool:
        with self._loading():
            try:
                items = [self.model.from_dict(p) for p in fetch() if isinstance(p, dict)]
            except BookstoreClientError as e:
                self._fail(f"Failed to load {self.entity_plural}", e)
                return False

            if keep is not None:
                fetched = len(items)
                items = [item for item in items if keep(item)]
                logger.debug(f"Kept {len(items)} of {fetched} {self.entity_plural}")

            self._items = items
            self._current_page = page
            # The list endpoints do not report pagination
            self._total_pages = 1
            self._total_items = len(items)
            return True

    def _create(self, item: T) -> Optional[T]:
        with self._loading():
            try:
                created = self.model.from_dict(self._api_create(item.to_dict()))
            except BookstoreClientError as e:
                self._fail(f"Failed to create {self.entity}", e)
                return None
            self._items = [created] + self._items
            self._total_items += 1
            logger.info(f"Created {self.entity} {created.id}")
            return created

    def _update(self, item: T) -> Optional[T]:
        if item.id is None:
            self._fail(f"Cannot update a {self.entity} without an id")
            self.notify_listeners()
            return None

        with self._loading():
            try:
                updated = self.model.from_dict(self._api_update(item.id, item.to_dict()))
            except BookstoreClientError as e:
                self._fail(f"Failed to update {self.entity}", e)
                return None
            self._items = [updated if existing.id == item.id else existing for existing in self._items]
            return updated

    def _delete(self, item_id: int) -> bool:
        with self._loading():
            try:
                self._api_delete(item_id)
            except BookstoreClientError as e:
                self._fail(describe_delete_error(self.entity, e.message))
                return False
            before = len(self._items)
            self._items = [item for item in self._items if item.id != item_id]
            if len(self._items) < before:
                self._total_items = max(0, self._total_items - 1)
            logger.info(f"Deleted {self.entity} {item_id}")
            return True

    def _get_by_id(self, item_id: int) -> Optional[T]:
        """Cached item, else the server's copy."""
        for item in self._items:
            if item.id == item_id:
                return item
        try:
            return self.model.from_dict(self._api_get(item_id))
        except BookstoreClientError as e:
            self._fail(e.message)
            self.notify_listeners()
            return None

    @property
    def entity_plural(self) -> str:
        if self.entity.endswith("y"):
            return self.entity[:-1] + "ies"
        return self.entity + "s"


class BooksProvider(CatalogProvider[Book]):
    """Library books, filterable by category, author and availability."""

    entity = "book"
    model = Book

    @property
    def books(self) -> List[Book]:
        return self.items

    def load_books(
        self,
        page: int = 1,
        search: Optional[str] = None,
        category: Optional[str] = None,
        author: Optional[str] = None,
        status: Optional[str] = None
    ) -> bool:
        """
        Load one page of books.

        Args:
            page: 1-based page
            search: Free-text search
            category: Category id (string from a query arg is fine)
            author: Author id
            status: "available", "unavailable" or "borrowed"; borrowed is
                filtered here since the API has no such filter

        Returns:
            True on success; False with error set otherwise
        """
        try:
            self.ensure_authenticated()
        except AuthenticationError as e:
            self._fail(e.server_message)
            self.notify_listeners()
            return False

        is_available = {"available": True, "unavailable": False}.get(status or "")

        def fetch() -> List[Dict[str, Any]]:
            return self._client.list_books(
                page=page,
                limit=self._items_per_page,
                search=search,
                category_id=parse_int(category),
                author_id=parse_int(author),
                is_available=is_available,
            )

        keep = (lambda book: book.is_borrowed_out) if status == "borrowed" else None
        return self._load(fetch, page=page, keep=keep)

    def ensure_authenticated(self) -> None:
        """
        Raises:
            AuthenticationError: If the client holds no access token
        """
        if not self._client.is_authenticated:
            raise AuthenticationError("load books", AUTH_REQUIRED_MESSAGE)

    def create_book(self, book: Book) -> Optional[Book]:
        return self._create(book)

    def update_book(self, book: Book) -> Optional[Book]:
        return self._update(book)

    def delete_book(self, book_id: int) -> bool:
        return self._delete(book_id)

    def get_book_by_id(self, book_id: int) -> Optional[Book]:
        return self._get_by_id(book_id)

    def _api_get(self, item_id: int) -> Dict[str, Any]:
        return self._client.get_book(item_id)

    def _api_create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.create_book(payload)

    def _api_update(self, item_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.update_book(item_id, payload)

    def _api_delete(self, item_id: int) -> None:
        self._client.delete_book(item_id)


class CategoriesProvider(CatalogProvider[Category]):
    entity = "category"
    model = Category

    @property
    def categories(self) -> List[Category]:
        return self.items

    def load_categories(self, page: int = 1, search: Optional[str] = None) -> bool:
        return self._load(
            lambda: self._client.list_categories(page=page, limit=self._items_per_page, search=search),
            page=page,
        )

    def active_categories(self) -> List[Category]:
        return [c for c in self._items if c.is_active]

    def create_category(self, category: Category) -> Optional[Category]:
        return self._create(category)

    def update_category(self, category: Category) -> Optional[Category]:
        return self._update(category)

    def delete_category(self, category_id: int) -> bool:
        return self._delete(category_id)

    def get_category_by_id(self, category_id: int) -> Optional[Category]:
        return self._get_by_id(category_id)

    def _api_get(self, item_id: int) -> Dict[str, Any]:
        return self._client.get_category(item_id)

    def _api_create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.create_category(payload)

    def _api_update(self, item_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.update_category(item_id, payload)

    def _api_delete(self, item_id: int) -> None:
        self._client.delete_category(item_id)


class AuthorsProvider(CatalogProvider[Author]):
    entity = "author"
    model = Author

    @property
    def authors(self) -> List[Author]:
        return self.items

    def load_authors(self, page: int = 1, search: Optional[str] = None) -> bool:
        return self._load(
            lambda: self._client.list_authors(page=page, limit=self._items_per_page, search=search),
            page=page,
        )

    def create_author(self, author: Author) -> Optional[Author]:
        return self._create(author)

    def update_author(self, author: Author) -> Optional[Author]:
        return self._update(author)

    def delete_author(self, author_id: int) -> bool:
        return self._delete(author_id)

    def get_author_by_id(self, author_id: int) -> Optional[Author]:
        return self._get_by_id(author_id)

    def _api_get(self, item_id: int) -> Dict[str, Any]:
        return self._client.get_author(item_id)

    def _api_create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.create_author(payload)

    def _api_update(self, item_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.update_author(item_id, payload)

    def _api_delete(self, item_id: int) -> None:
        self._client.delete_author(item_id)
