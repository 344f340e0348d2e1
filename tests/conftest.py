"""
Pytest fixtures and test configuration
"""
import base64
import io

import pytest
import pytest_asyncio
from PIL import Image as PILImage
from sqlalchemy import func, select

from tagalbum.core.config import load_settings
from tagalbum.db.database import create_engine, create_session_factory, create_tables
from tagalbum.models.image import Image, Tag, image_tag
from tagalbum.schemas.image import ImageUrl
from tagalbum.services.image_service import insert_image
from tagalbum.services.storage_service import ImageStorage


@pytest.fixture
def settings(tmp_path):
    """Test configuration backed by a throwaway SQLite file."""
    return load_settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test_album.db'}",
        IMAGGA_API_KEY="test-key",
        IMAGGA_API_SECRET="test-secret",
        UPLOAD_DIR=str(tmp_path / "uploads"),
    )


@pytest_asyncio.fixture
async def engine(settings):
    engine = create_engine(settings.DATABASE_URL)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(settings):
    return ImageStorage(settings)


def make_png_base64(color="red", size=(4, 4)) -> str:
    buffer = io.BytesIO()
    PILImage.new("RGB", size, color).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode()


@pytest.fixture
def png_base64():
    return make_png_base64()


@pytest.fixture
def add_image(session_factory):
    """Insert an image by URL in its own session and return its id."""

    async def _add(tags, url="http://example.com/image.png", label=None):
        async with session_factory() as session:
            return await insert_image(session, ImageUrl(url=url), list(tags), label=label)

    return _add


@pytest.fixture
def count_rows(session_factory):
    """Count rows of images, tags and image_tags in a fresh session."""

    async def _count():
        async with session_factory() as session:
            images = await session.scalar(select(func.count()).select_from(Image))
            tags = await session.scalar(select(func.count()).select_from(Tag))
            links = await session.scalar(select(func.count()).select_from(image_tag))
            return images, tags, links

    return _count
