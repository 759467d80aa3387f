from typing_extensions import AsyncIterable, AsyncIterator, Iterable, Literal, Any
from abc import ABC, abstractmethod
from dataclasses import dataclass

class StrMixin:
  def __str__(self) -> str:
    return self.__repr__()

@dataclass
class KVError(StrMixin, Exception):
  detail: Any = None

@dataclass
class KVConnectionError(KVError):
  detail: Any = None
  reason: Literal['connection-error'] = 'connection-error'

@dataclass
class InvalidCredential(KVConnectionError):
  detail: Any = None
  reason: Literal['invalid-credential'] = 'invalid-credential' # type: ignore

@dataclass
class StoreError(KVError):
  detail: Any = 'Key-value store operation failed'
  reason: Literal['store-error'] = 'store-error'

@dataclass
class InvalidData(KVError):
  detail: Any = None
  reason: Literal['invalid-data'] = 'invalid-data'


class KV(ABC):
  """Async key-value store ABC over opaque `bytes` values"""

  @staticmethod
  def of(conn_str: str) -> 'KV':
    """
    Create a KV (Key-Value) store instance from a connection string.

    Supported schemes:
    - `azure+cosmos://<account>?key=<key>&db=<db>&container=<container>`: single-tenant CosmosKV
    - `azure+cosmos://<account>?key=<key>&db=<db>&container=<container>&store=<store_id>&app=<app_id>`: multi-tenant CosmosKV
    - `memory://`: DictKV

    The account key must be URL-encoded (base64 keys contain `+`, `/` and `=`).

    Examples:
    >>> kv = KV.of('memory://')
    >>> kv = KV.of('azure+cosmos://myaccount?key=abc%2B%3D%3D&db=kv&container=pairs&store=default')
    """
    from .conn_strings import parse
    return parse(conn_str)

  @abstractmethod
  async def get(self, key: str) -> bytes | None:
    """Read the value at `key`. Returns `None` if the key does not exist."""

  @abstractmethod
  async def set(self, key: str, value: bytes):
    """Insert or fully replace the value at `key`"""

  @abstractmethod
  async def delete(self, key: str):
    """Delete `key`. Deleting an inexistent key is a no-op."""

  @abstractmethod
  def keys(self) -> AsyncIterable[str]:
    """Stream all keys in the `KV`"""

  async def exists(self, key: str) -> bool:
    """Does the `KV` have `key`?"""
    return await self.get(key) is not None

  async def get_keys(self) -> list[str]:
    return [key async for key in self.keys()]

  async def items(self) -> AsyncIterator[tuple[str, bytes]]:
    """Iterate over all items in the `KV`"""
    async for key in self.keys():
      if (value := await self.get(key)) is not None:
        yield key, value

  async def iter_many(self, keys: Iterable[str]) -> AsyncIterator[tuple[str, bytes | None]]:
    """Stream `(key, value)` for every key in `keys` that exists. Missing keys are skipped, not yielded as `(key, None)`."""
    for key in keys:
      if (value := await self.get(key)) is not None:
        yield key, value

  async def get_many(self, keys: Iterable[str]) -> list[tuple[str, bytes | None]]:
    """Read many keys at once. Only existing keys are present in the result."""
    return [item async for item in self.iter_many(keys)]

  async def set_many(self, pairs: Iterable[tuple[str, bytes]]):
    """Sequentially `set` each pair. Not atomic: the first error aborts, leaving the previous pairs committed."""
    for key, value in pairs:
      await self.set(key, value)

  async def delete_many(self, keys: Iterable[str]):
    """Sequentially `delete` each key. Not atomic: the first error aborts, leaving the previous deletes committed."""
    for key in keys:
      await self.delete(key)

  async def clear(self):
    """Delete all entries"""
    await self.delete_many(await self.get_keys())

  async def close(self):
    """Release the underlying connection, if any"""

  async def __aenter__(self):
    return self

  async def __aexit__(self, *_):
    await self.close()
