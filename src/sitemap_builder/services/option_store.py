"""Key-value option stores for persisted generation state."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from sitemap_builder.models import Option

SessionScopeFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_option_logger = logging.getLogger("sitemap_builder.options")


class KeyValueStore(Protocol):
    """Persistent get/set/delete store addressed by string keys.

    ``autoload=False`` marks high-churn keys that should not be warmed into
    any read cache, such as progress counters polled during a run.
    """

    async def get(self, key: str, default: Any = None) -> Any: ...

    async def set(self, key: str, value: Any, *, autoload: bool = True) -> None: ...

    async def delete(self, key: str) -> bool: ...


class InMemoryOptionStore:
    """Dictionary-backed store used by tests and single-process tooling."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})
        self._autoload: dict[str, bool] = {key: True for key in self._values}

    async def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    async def set(self, key: str, value: Any, *, autoload: bool = True) -> None:
        self._values[key] = value
        self._autoload[key] = autoload

    async def delete(self, key: str) -> bool:
        self._autoload.pop(key, None)
        return self._values.pop(key, None) is not None

    def is_autoloaded(self, key: str) -> bool:
        return self._autoload.get(key, False)

    def snapshot(self) -> dict[str, Any]:
        return dict(self._values)


class SQLAlchemyOptionStore:
    """Store options as JSON rows in the ``options`` table.

    Each call runs in its own transaction so a write is visible to the next
    unit of work as soon as the call returns.
    """

    def __init__(self, *, session_factory: SessionScopeFactory | None = None) -> None:
        if session_factory is None:
            from sitemap_builder.database import session_scope

            session_factory = session_scope

        self._session_factory = session_factory

    async def get(self, key: str, default: Any = None) -> Any:
        async with self._session_factory() as session:
            option = await session.get(Option, key)
            if option is None:
                return default
            return option.value

    async def set(self, key: str, value: Any, *, autoload: bool = True) -> None:
        async with self._session_factory() as session:
            option = await session.get(Option, key)
            if option is None:
                session.add(Option(key=key, value=value, autoload=autoload))
            else:
                option.value = value
                option.autoload = autoload

        _option_logger.debug("option_updated", extra={"key": key})

    async def delete(self, key: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(delete(Option).where(Option.key == key))

        return bool(result.rowcount)


__all__ = [
    "InMemoryOptionStore",
    "KeyValueStore",
    "SQLAlchemyOptionStore",
    "SessionScopeFactory",
]
