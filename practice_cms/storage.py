"""
Storage facade for the practice website.
Maps typed create/read/update/delete calls onto table operations through an
AsyncSession. Callers own the transaction (the request-scoped session from
get_db commits or rolls back).
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from practice_cms.models import (
    AdminUser,
    Credential,
    FaqItem,
    GalleryPhoto,
    Service,
    SiteConfig,
    Specialty,
    Testimonial,
    User,
)

logger = logging.getLogger(__name__)


class EntityNotFoundError(LookupError):
    """Raised when an update or reorder references ids that do not exist."""

    def __init__(self, entity: str, ids: Iterable[Any]):
        self.entity = entity
        self.ids = sorted(ids)
        super().__init__(f"{entity} not found: {self.ids}")


class OrderedRepository:
    """
    CRUD access to one table whose rows carry `is_active` and `order`.
    """

    def __init__(self, session: AsyncSession, model, entity_name: str):
        self.session = session
        self.model = model
        self.entity_name = entity_name

    def _ordered_query(self, active_only: bool):
        query = select(self.model).order_by(self.model.order.asc(), self.model.id.asc())
        if active_only:
            query = query.where(self.model.is_active.is_(True))
        return query.execution_options(populate_existing=True)

    async def get_all(self, active_only: bool = False) -> List[Any]:
        result = await self.session.execute(self._ordered_query(active_only))
        return list(result.scalars().all())

    async def get_page(self, offset: int, limit: int, active_only: bool = False) -> List[Any]:
        """One slice of the ordered listing."""
        result = await self.session.execute(
            self._ordered_query(active_only).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    async def count(self, active_only: bool = False) -> int:
        query = select(func.count(self.model.id))
        if active_only:
            query = query.where(self.model.is_active.is_(True))
        result = await self.session.execute(query)
        return result.scalar()

    async def get(self, entity_id: int) -> Optional[Any]:
        result = await self.session.execute(
            select(self.model).where(self.model.id == entity_id)
        )
        return result.scalar_one_or_none()

    async def next_order(self) -> int:
        """Position right after the current last row (0 for an empty table)."""
        result = await self.session.execute(select(func.max(self.model.order)))
        current_max = result.scalar()
        return 0 if current_max is None else current_max + 1

    async def create(self, data: Dict[str, Any]) -> Any:
        values = dict(data)
        if values.get("order") is None:
            values["order"] = await self.next_order()

        row = self.model(**values)
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)

        logger.info(f"Created {self.entity_name}: ID {row.id}, order={row.order}")
        return row

    async def update(self, entity_id: int, data: Dict[str, Any]) -> Any:
        """
        Patch only the supplied fields.

        Raises:
            EntityNotFoundError: if no row has this id
        """
        row = await self.get(entity_id)
        if row is None:
            raise EntityNotFoundError(self.entity_name, [entity_id])

        for field, value in data.items():
            setattr(row, field, value)

        await self.session.flush()
        await self.session.refresh(row)

        logger.info(f"Updated {self.entity_name}: ID {entity_id}, fields={sorted(data)}")
        return row

    async def delete(self, entity_id: int) -> None:
        """Remove the row if present. Deleting a missing id is a no-op."""
        result = await self.session.execute(
            delete(self.model).where(self.model.id == entity_id)
        )
        if result.rowcount:
            logger.info(f"Deleted {self.entity_name}: ID {entity_id}")
        else:
            logger.debug(f"Delete of missing {self.entity_name} ID {entity_id} ignored")

    async def reorder(self, pairs: Iterable[Tuple[int, int]]) -> int:
        """
        Assign `order` for each (id, order) pair.
        Nothing is written when any id is unknown.

        Returns:
            int: number of rows updated
        """
        pairs = list(pairs)
        ids = [entity_id for entity_id, _ in pairs]

        result = await self.session.execute(
            select(self.model.id).where(self.model.id.in_(ids))
        )
        existing_ids = set(result.scalars().all())
        missing_ids = set(ids) - existing_ids
        if missing_ids:
            raise EntityNotFoundError(self.entity_name, missing_ids)

        if pairs:
            await self.session.execute(
                update(self.model),
                [{"id": entity_id, "order": position} for entity_id, position in pairs],
            )

        logger.info(f"Reordered {len(pairs)} {self.entity_name} row(s)")
        return len(pairs)


def _upsert_for(session: AsyncSession):
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert
    if dialect_name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upsert is not supported for dialect {dialect_name!r}")


class DatabaseStorage:
    """
    Entry point used by the routes: one repository per orderable table plus
    users, admin users and site configuration.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.testimonials = OrderedRepository(session, Testimonial, "Testimonial")
        self.gallery_photos = OrderedRepository(session, GalleryPhoto, "Gallery photo")
        self.credentials = OrderedRepository(session, Credential, "Credential")
        self.faq_items = OrderedRepository(session, FaqItem, "FAQ item")
        self.services = OrderedRepository(session, Service, "Service")
        self.specialties = OrderedRepository(session, Specialty, "Specialty")

    # Users

    async def get_user(self, user_id: int) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def create_user(self, username: str, password: str) -> User:
        user = User(username=username, password=password)
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    # Admin users

    async def get_admin_user(self, username: str) -> Optional[AdminUser]:
        result = await self.session.execute(
            select(AdminUser).where(AdminUser.username == username)
        )
        return result.scalar_one_or_none()

    async def create_admin_user(self, username: str, password_hash: str) -> AdminUser:
        admin = AdminUser(username=username, password_hash=password_hash)
        self.session.add(admin)
        await self.session.flush()
        await self.session.refresh(admin)
        logger.info(f"Created admin user: {username}")
        return admin

    # Site configuration

    async def get_site_config(self, key: str) -> Optional[SiteConfig]:
        result = await self.session.execute(
            select(SiteConfig)
            .where(SiteConfig.key == key)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def set_site_config(self, key: str, value: str) -> SiteConfig:
        """
        Insert or update a configuration value in a single statement.
        """
        now = datetime.now(timezone.utc)
        insert = _upsert_for(self.session)
        stmt = insert(SiteConfig).values(key=key, value=value, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[SiteConfig.key],
            set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
        ).returning(SiteConfig)

        result = await self.session.execute(
            stmt, execution_options={"populate_existing": True}
        )
        config = result.scalars().one()
        logger.info(f"Saved site config: {key}")
        return config

    async def get_all_site_configs(self) -> List[SiteConfig]:
        result = await self.session.execute(
            select(SiteConfig)
            .order_by(SiteConfig.key.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def delete_site_config(self, key: str) -> None:
        await self.session.execute(delete(SiteConfig).where(SiteConfig.key == key))
        logger.info(f"Deleted site config: {key}")
