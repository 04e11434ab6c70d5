# cart_service/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def create_session_factory(url: str) -> sessionmaker:
    """Engine + tables + session factory for the SQL cart store."""
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            # one shared connection, otherwise every session sees an empty db
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)

    # registers the table on Base.metadata
    from cart_service.data.models.cart import CartModel  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
