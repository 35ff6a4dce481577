"""
Shared fixtures: an in-memory SQLite store, a TestClient wired to it,
and bearer tokens for a regular user and an admin.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["VERBOSE_ERRORS"] = "false"
os.environ.pop("DATABASE_URL", None)

from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from painel.core.config import settings
from painel.database import Base, get_db, get_engine
from painel.main import app
from painel.models.movements import Loss, Sale
from painel.models.planning import Planning
from painel.models.products import Product


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_engine] = lambda: engine

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def sign_token(claims: dict, expires_in: timedelta = timedelta(hours=1), token_type="access") -> str:
    """Token as the identity provider would issue it."""
    payload = {
        **claims,
        "exp": datetime.now(timezone.utc) + expires_in,
        "type": token_type,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _auth(role: str) -> dict:
    return bearer(sign_token({
        "sub": f"{role}-1",
        "email": f"{role}@padaria.test",
        "role": role,
    }))


@pytest.fixture
def user_headers():
    return _auth("user")


@pytest.fixture
def admin_headers():
    return _auth("admin")


@pytest.fixture
def signed_headers():
    def _headers(claims, **kwargs):
        return bearer(sign_token(claims, **kwargs))
    return _headers


# ============================================
# FACTORIES
# ============================================

@pytest.fixture
def make_product(db):
    def _make(nome="Pão Francês", setor="Padaria", **kwargs):
        product = Product(nome=nome, setor=setor, **kwargs)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make


def _movement_factory(db, model):
    def _add(produto_id, data, quantidade, valor_reais):
        row = model(
            produto_id=produto_id,
            data=date.fromisoformat(data) if isinstance(data, str) else data,
            quantidade=quantidade,
            valor_reais=valor_reais,
        )
        db.add(row)
        db.commit()
        return row
    return _add


@pytest.fixture
def add_sale(db):
    return _movement_factory(db, Sale)


@pytest.fixture
def add_loss(db):
    return _movement_factory(db, Loss)


@pytest.fixture
def add_planning(db):
    def _add(produto_id, data, quantidade_planejada):
        row = Planning(
            produto_id=produto_id,
            data=date.fromisoformat(data),
            quantidade_planejada=quantidade_planejada,
        )
        db.add(row)
        db.commit()
        return row
    return _add
