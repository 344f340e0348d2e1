from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _on_sqlite_connect(dbapi_connection, connection_record):
    # 关闭驱动自带的隐式事务，由 SQLAlchemy 显式发出 BEGIN，SAVEPOINT 才能正确嵌套
    dbapi_connection.isolation_level = None
    # SQLite 默认不执行外键约束，image_tags 的级联删除依赖它
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """创建异步引擎"""
    engine = create_async_engine(database_url, echo=echo)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _on_sqlite_connect)
        event.listen(engine.sync_engine, "begin", _on_sqlite_begin)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False
    )


async def create_tables(engine: AsyncEngine) -> None:
    # 确保所有 Model 都已注册到 Base.metadata
    import tagalbum.db.base  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# 依赖注入项
async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.session_factory() as session:
        yield session
