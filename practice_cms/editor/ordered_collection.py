"""
Ordered-collection editor for the admin panel lists (testimonials, gallery
photos, credentials, FAQ, services, specialties).

State is an immutable tuple of response models. Each operation builds a new
tuple, applies it optimistically, then persists it through an AdminGateway.
When persisting fails the configured RollbackPolicy decides whether the
previous tuple is restored, and SyncError is raised either way.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, Iterable, Optional, Tuple, Type, TypeVar, Union
import logging

from pydantic import BaseModel

from practice_cms.editor.gateway import AdminGateway
from practice_cms.schemas import (
    CredentialCreate, CredentialResponse, CredentialUpdate,
    FaqItemCreate, FaqItemResponse, FaqItemUpdate,
    GalleryPhotoCreate, GalleryPhotoResponse, GalleryPhotoUpdate,
    OrderedResponse,
    ServiceCreate, ServiceResponse, ServiceUpdate,
    SpecialtyCreate, SpecialtyResponse, SpecialtyUpdate,
    TestimonialCreate, TestimonialResponse, TestimonialUpdate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=OrderedResponse)


class RollbackPolicy(str, Enum):
    REVERT = "revert"
    KEEP = "keep"


class SyncError(Exception):
    """The server rejected or never received a change made in the editor."""

    def __init__(self, collection: str, action: str, cause: Exception):
        self.collection = collection
        self.action = action
        self.cause = cause
        super().__init__(f"Failed to {action} {collection}: {cause}")


@dataclass(frozen=True)
class CollectionSpec:
    path: str
    item_schema: Type[OrderedResponse]
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]


COLLECTIONS: Dict[str, CollectionSpec] = {
    spec.path: spec
    for spec in (
        CollectionSpec("testimonials", TestimonialResponse, TestimonialCreate, TestimonialUpdate),
        CollectionSpec("gallery-photos", GalleryPhotoResponse, GalleryPhotoCreate, GalleryPhotoUpdate),
        CollectionSpec("credentials", CredentialResponse, CredentialCreate, CredentialUpdate),
        CollectionSpec("faq", FaqItemResponse, FaqItemCreate, FaqItemUpdate),
        CollectionSpec("services", ServiceResponse, ServiceCreate, ServiceUpdate),
        CollectionSpec("specialties", SpecialtyResponse, SpecialtyCreate, SpecialtyUpdate),
    )
}


def renumber(items: Iterable[T]) -> Tuple[T, ...]:
    """Copy of `items` with `order` set to each item's zero-based position."""
    return tuple(
        item if item.order == index else item.model_copy(update={"order": index})
        for index, item in enumerate(items)
    )


def swap(items: Tuple[T, ...], i: int, j: int) -> Tuple[T, ...]:
    swapped = list(items)
    swapped[i], swapped[j] = swapped[j], swapped[i]
    return tuple(swapped)


def move(items: Tuple[T, ...], from_index: int, to_index: int) -> Tuple[T, ...]:
    """Remove the item at from_index and reinsert it at to_index."""
    moved = list(items)
    moved.insert(to_index, moved.pop(from_index))
    return tuple(moved)


class OrderedCollectionEditor(Generic[T]):

    def __init__(
        self,
        spec: CollectionSpec,
        gateway: AdminGateway,
        items: Iterable[Union[T, Dict[str, Any]]] = (),
        rollback: RollbackPolicy = RollbackPolicy.REVERT,
    ):
        self.spec = spec
        self.gateway = gateway
        self.rollback = rollback
        self._items: Tuple[T, ...] = ()
        self._pending = 0
        self.load(items)

    @property
    def items(self) -> Tuple[T, ...]:
        return self._items

    @property
    def pending(self) -> bool:
        """True while a change is waiting for the server."""
        return self._pending > 0

    def load(self, items: Iterable[Union[T, Dict[str, Any]]]) -> Tuple[T, ...]:
        """Replace local state with a fresh server listing, sorted by order."""
        parsed = [self.spec.item_schema.model_validate(item) for item in items]
        self._items = tuple(sorted(parsed, key=lambda item: (item.order, item.id)))
        return self._items

    def index_of(self, item_id: int) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None

    def can_move_up(self, item_id: int) -> bool:
        index = self.index_of(item_id)
        return index is not None and index > 0

    def can_move_down(self, item_id: int) -> bool:
        index = self.index_of(item_id)
        return index is not None and index < len(self._items) - 1

    async def move_up(self, item_id: int) -> Tuple[T, ...]:
        if not self.can_move_up(item_id):
            return self._items
        index = self.index_of(item_id)
        return await self._persist_order(swap(self._items, index, index - 1))

    async def move_down(self, item_id: int) -> Tuple[T, ...]:
        if not self.can_move_down(item_id):
            return self._items
        index = self.index_of(item_id)
        return await self._persist_order(swap(self._items, index, index + 1))

    async def drag_reorder(self, from_id: int, to_id: int) -> Tuple[T, ...]:
        """Drop `from_id` onto the position of `to_id`. Unknown ids are ignored."""
        if from_id == to_id:
            return self._items
        from_index = self.index_of(from_id)
        to_index = self.index_of(to_id)
        if from_index is None or to_index is None:
            logger.debug(f"Ignoring drag of {self.spec.path} {from_id} onto {to_id}")
            return self._items
        return await self._persist_order(move(self._items, from_index, to_index))

    async def toggle_active(self, item_id: int) -> Tuple[T, ...]:
        """Flip is_active of one item and wait for the server to store it."""
        index = self.index_of(item_id)
        if index is None:
            return self._items

        previous = self._items
        item = previous[index]
        toggled = list(previous)
        toggled[index] = item.model_copy(update={"is_active": not item.is_active})
        self._items = tuple(toggled)

        await self._sync(
            "toggle",
            previous,
            self.gateway.update(self.spec.path, item_id, {"is_active": not item.is_active}),
        )
        return self._items

    async def create(self, data: Union[BaseModel, Dict[str, Any]]) -> T:
        """
        Validate and create an item, appending the server's copy.

        Raises:
            pydantic.ValidationError: before anything is sent
            SyncError: when the server call fails
        """
        payload = self._validated(self.spec.create_schema, data).model_dump(mode="json", exclude_none=True)
        self._pending += 1
        try:
            created = await self.gateway.create(self.spec.path, payload)
        except Exception as e:
            logger.error(f"Failed to create {self.spec.path}: {str(e)}")
            raise SyncError(self.spec.path, "create", e) from e
        finally:
            self._pending -= 1

        item = self.spec.item_schema.model_validate(created)
        self._items = self._items + (item,)
        return item

    async def update(self, item_id: int, data: Union[BaseModel, Dict[str, Any]]) -> T:
        """
        Validate and apply a partial edit, replacing the item with the server's copy.

        Raises:
            KeyError: if the item is not in the list
            pydantic.ValidationError: before anything is sent
            SyncError: when the server call fails
        """
        if self.index_of(item_id) is None:
            raise KeyError(item_id)
        payload = self._validated(self.spec.update_schema, data).model_dump(mode="json", exclude_unset=True)
        self._pending += 1
        try:
            updated = await self.gateway.update(self.spec.path, item_id, payload)
        except Exception as e:
            logger.error(f"Failed to update {self.spec.path} {item_id}: {str(e)}")
            raise SyncError(self.spec.path, "update", e) from e
        finally:
            self._pending -= 1

        item = self.spec.item_schema.model_validate(updated)
        # The list may have changed while the request was in flight
        index = self.index_of(item_id)
        if index is not None:
            replaced = list(self._items)
            replaced[index] = item
            self._items = tuple(replaced)
        return item

    async def delete(self, item_id: int, confirm: Callable[[T], bool]) -> Tuple[T, ...]:
        """
        Delete one item after `confirm(item)` returns True.
        Remaining items keep their `order` values; the next reorder closes gaps.
        """
        index = self.index_of(item_id)
        if index is None or not confirm(self._items[index]):
            return self._items

        self._pending += 1
        try:
            await self.gateway.delete(self.spec.path, item_id)
        except Exception as e:
            logger.error(f"Failed to delete {self.spec.path} {item_id}: {str(e)}")
            raise SyncError(self.spec.path, "delete", e) from e
        finally:
            self._pending -= 1

        self._items = tuple(item for item in self._items if item.id != item_id)
        return self._items

    async def _persist_order(self, reordered: Tuple[T, ...]) -> Tuple[T, ...]:
        previous = self._items
        self._items = renumber(reordered)
        pairs = [(item.id, item.order) for item in self._items]
        await self._sync("reorder", previous, self.gateway.reorder(self.spec.path, pairs))
        return self._items

    async def _sync(self, action: str, previous: Tuple[T, ...], call) -> None:
        self._pending += 1
        try:
            await call
        except Exception as e:
            if self.rollback is RollbackPolicy.REVERT:
                self._items = previous
            logger.error(
                f"Failed to {action} {self.spec.path} ({self.rollback.value}): {str(e)}"
            )
            raise SyncError(self.spec.path, action, e) from e
        finally:
            self._pending -= 1

    @staticmethod
    def _validated(schema: Type[BaseModel], data: Union[BaseModel, Dict[str, Any]]) -> BaseModel:
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_unset=True)
        return schema.model_validate(data)


def editor_for(
    collection: str,
    gateway: AdminGateway,
    items: Iterable[Union[OrderedResponse, Dict[str, Any]]] = (),
    rollback: RollbackPolicy = RollbackPolicy.REVERT,
) -> OrderedCollectionEditor:
    """Editor for one of the admin collections, e.g. editor_for("testimonials", gateway, rows)."""
    return OrderedCollectionEditor(COLLECTIONS[collection], gateway, items, rollback)
