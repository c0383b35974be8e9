import logging

import pymongo
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings
from .models import Base
from .store import MongoOrderStore, OrderStore, SqlOrderStore

logger = logging.getLogger(__name__)


def create_session_factory(database_url: str):
    kwargs = {}
    if database_url.startswith("sqlite"):
        # Store calls run on worker threads
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_mongo_collection(mongodb_uri: str):
    # serverSelectionTimeoutMS=2000 so a dead server fails a tick instead of hanging it for 30s
    client = pymongo.MongoClient(mongodb_uri, serverSelectionTimeoutMS=2000, tz_aware=True)
    db = client.get_default_database(default="orders")
    return db["orders"]


def build_store(settings: Settings) -> OrderStore:
    if settings.store_backend == "mongo":
        logger.info("Using MongoDB order store")
        return MongoOrderStore(create_mongo_collection(settings.mongodb_uri))
    logger.info("Using SQL order store (%s)", settings.database_url)
    return SqlOrderStore(create_session_factory(settings.database_url))
