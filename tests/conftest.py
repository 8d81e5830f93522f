import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import practice_cms.models  # noqa: F401 - registers tables on Base.metadata
from practice_cms.config import settings
from practice_cms.database import Base, get_db
from practice_cms.main import app
from practice_cms.utils.auth import hash_password
from practice_cms.utils.rate_limit import limiter

ADMIN_PASSWORD = "test-admin-password"
settings.ADMIN_PASSWORD_HASH = hash_password(ADMIN_PASSWORD, rounds=4)

ADMIN_HEADERS = {"X-CMS-Password": ADMIN_PASSWORD}


@pytest.fixture
def session_factory(tmp_path):
    db_path = tmp_path / "practice_cms.db"

    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    # NullPool: TestClient runs the app on its own event loop
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()


def png_bytes(size=(32, 32), color=(120, 80, 200)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_testimonial(**overrides) -> dict:
    payload = {
        "name": "Ana",
        "service": "Terapia individual",
        "testimonial": "Me ajudou muito a lidar com a ansiedade.",
        "rating": 5,
    }
    payload.update(overrides)
    return payload
