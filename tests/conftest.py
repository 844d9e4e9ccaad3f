import os

# Settings читаются при импорте пакета
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cafe_pos.db.base import Base
from cafe_pos.db.deps import get_async_session
from cafe_pos.main import app
from cafe_pos.models import Category, MenuItem, MenuItemVariant, RoleEnum, User


ADMIN_PASSWORD = "admin123"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cafe_pos.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def catalog(session_factory):
    """Меню кофейни и сотрудники для сценариев заказа."""
    async with session_factory() as session:
        coffee = Category(name="Coffee", display_order=1)
        pastries = Category(name="Pastries", display_order=2)
        session.add_all([coffee, pastries])
        await session.flush()

        latte = MenuItem(name="Latte", category_id=coffee.id, price=Decimal("150.00"), stock_quantity=10)
        croissant = MenuItem(name="Croissant", category_id=pastries.id, price=Decimal("60.00"), stock_quantity=5)
        mocha = MenuItem(
            name="Mocha", category_id=coffee.id, price=Decimal("170.00"), stock_quantity=20, is_available=False
        )
        session.add_all([latte, croissant, mocha])
        await session.flush()

        latte_16 = MenuItemVariant(
            menu_item_id=latte.id, variant_name="Latte 16oz", size_label="16oz", price=Decimal("150.00")
        )
        latte_22 = MenuItemVariant(
            menu_item_id=latte.id, variant_name="Latte 22oz", size_label="22oz", price=Decimal("180.00")
        )
        latte_32 = MenuItemVariant(
            menu_item_id=latte.id,
            variant_name="Latte 32oz",
            size_label="32oz",
            price=Decimal("220.00"),
            is_available=False,
        )
        session.add_all([latte_16, latte_22, latte_32])

        admin = User(username="admin", email="admin@cafe.test", role=RoleEnum.owner)
        admin.set_password(ADMIN_PASSWORD)
        cashier = User(username="cashier", email="cashier@cafe.test", role=RoleEnum.cashier)
        cashier.set_password("cashier123")
        retired = User(username="old_admin", role=RoleEnum.admin, is_active=False)
        retired.set_password(ADMIN_PASSWORD)
        session.add_all([admin, cashier, retired])

        await session.commit()

        return SimpleNamespace(
            latte_id=latte.id,
            croissant_id=croissant.id,
            mocha_id=mocha.id,
            latte_16_id=latte_16.id,
            latte_22_id=latte_22.id,
            latte_32_id=latte_32.id,
            coffee_id=coffee.id,
            admin_id=admin.id,
            cashier_id=cashier.id,
        )


@pytest.fixture
def count_rows(session_factory):
    async def _count(model, *conditions):
        async with session_factory() as session:
            return await session.scalar(select(func.count()).select_from(model).where(*conditions))

    return _count


@pytest.fixture
def stock_of(session_factory):
    async def _stock(menu_item_id):
        async with session_factory() as session:
            item = await session.get(MenuItem, menu_item_id)
            return item.stock_quantity

    return _stock
