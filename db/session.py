# Nombre de archivo: session.py
# Ubicación de archivo: db/session.py
# Descripción: Configuración de engine y sesión SQLAlchemy para la API de reclamos

from __future__ import annotations

from functools import lru_cache
from os import getenv

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


def _engine_url() -> str:
    return getenv(
        "ALEMBIC_URL",
        getenv(
            "DATABASE_URL",
            f"postgresql+psycopg://{getenv('POSTGRES_USER', 'claims')}:{getenv('POSTGRES_PASSWORD', 'claims')}@{getenv('POSTGRES_HOST', 'postgres')}:{getenv('POSTGRES_PORT', '5432')}/{getenv('POSTGRES_DB', 'claims')}",
        ),
    )


@lru_cache(maxsize=4)
def get_engine(url: str | None = None) -> Engine:
    # El engine se crea recién al primer uso: sin DATABASE_URL la API trabaja en modo local
    return create_engine(url or _engine_url(), pool_pre_ping=True, pool_recycle=1800)


def get_sessionmaker(url: str | None = None) -> sessionmaker:
    return sessionmaker(bind=get_engine(url), autoflush=False, autocommit=False, expire_on_commit=False)
