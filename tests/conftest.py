from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

import pytest
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError
from dslog import Logger

from cosmoskv import CosmosKV, scope_of


KEY = 'c2VjcmV0LWtleQ=='  # base64('secret-key')
CONDITION = re.compile(r'^c\.(\w+) (=|IN) (.+)$')


async def aiter_list(items: list):
  for item in items:
    yield item


def not_found(message: str = 'Entity with the specified id does not exist in the system.'):
  return CosmosResourceNotFoundError(status_code=404, message=message)


def throttled():
  return CosmosHttpResponseError(status_code=429, message='Request rate is large')


class FakePaged:
  """Mimics `AsyncItemPaged`: pages are fetched lazily through `by_page()`"""

  def __init__(self, container: FakeContainer, items: list[dict], page_size: int):
    self.container = container
    self.items = items
    self.page_size = page_size

  def by_page(self, continuation_token=None):
    return self._pages()

  async def _pages(self):
    self.container.check('query_page')
    if not self.items:
      yield aiter_list([])
      return
    for i in range(0, len(self.items), self.page_size):
      if i > 0:
        self.container.check('query_page')
      self.container.pages_served += 1
      yield aiter_list(self.items[i:i + self.page_size])


@dataclass
class FakeContainer:
  """In-memory Cosmos container. Evaluates the parameterized queries `CosmosKV` emits."""
  partition_key_path: str = '/id'
  page_size: int = 2
  docs: dict[tuple[Any, str], dict] = field(default_factory=dict)
  queries: list[dict] = field(default_factory=list)
  deletes: list[tuple[Any, str]] = field(default_factory=list)
  failures: dict[str, tuple[int, Exception]] = field(default_factory=dict)
  pages_served: int = 0

  def fail(self, method: str, error: Exception, *, after: int = 0):
    """Make `method` raise `error` once `after` calls have succeeded"""
    self.failures[method] = (after, error)

  def check(self, method: str):
    if method in self.failures:
      remaining, error = self.failures[method]
      if remaining <= 0:
        raise error
      self.failures[method] = (remaining - 1, error)

  def partition_of(self, doc: dict):
    return doc.get(self.partition_key_path.lstrip('/'))

  def stored(self, key: str) -> list[dict]:
    return [doc for (_, id), doc in self.docs.items() if id == key]

  async def upsert_item(self, body: dict, **kwargs):
    self.check('upsert_item')
    doc = json.loads(json.dumps(body))
    doc.update({'_rid': 'rid', '_etag': '"etag"', '_ts': 1700000000})
    self.docs[(self.partition_of(doc), doc['id'])] = doc
    return doc

  async def delete_item(self, item: str, partition_key: Any, **kwargs):
    self.check('delete_item')
    self.deletes.append((partition_key, item))
    if (partition_key, item) not in self.docs:
      raise not_found()
    del self.docs[(partition_key, item)]

  def query_items(self, query: str, *, parameters: list[dict] | None = None, partition_key: Any = None, max_item_count: int | None = None, **kwargs):
    self.queries.append({
      'query': query, 'parameters': parameters or [],
      'partition_key': partition_key, 'max_item_count': max_item_count,
    })
    params = {p['name']: p['value'] for p in parameters or []}
    items = [
      doc for (pk, _), doc in self.docs.items()
      if (partition_key is None or pk == partition_key) and matches(doc, query, params)
    ]
    return FakePaged(self, items, max_item_count or self.page_size)


def matches(doc: dict, query: str, params: dict) -> bool:
  head, _, where = query.partition(' WHERE ')
  assert head == 'SELECT * FROM c', query
  if not where:
    return True
  for condition in where.split(' AND '):
    match = CONDITION.match(condition)
    assert match, condition
    attr, op, operand = match.groups()
    if op == '=':
      ok = doc.get(attr) == params[operand]
    else:
      names = operand.strip('()').split(', ')
      ok = doc.get(attr) in [params[name] for name in names]
    if not ok:
      return False
  return True


@dataclass
class FakeDatabase:
  client: FakeCosmosClient
  id: str

  def get_container_client(self, container: str) -> FakeContainer:
    return self.client.databases[self.id][container]

  async def create_container_if_not_exists(self, id: str, partition_key: Any, **kwargs):
    containers = self.client.databases[self.id]
    if id not in containers:
      containers[id] = FakeContainer(partition_key_path=partition_key.path)
    return containers[id]


@dataclass
class FakeCosmosClient:
  databases: dict[str, dict[str, FakeContainer]] = field(default_factory=dict)
  endpoint: str | None = None
  credential: str | None = None
  closed: bool = False

  def get_database_client(self, db: str) -> FakeDatabase:
    return FakeDatabase(self, db)

  async def create_database_if_not_exists(self, id: str, **kwargs) -> FakeDatabase:
    self.databases.setdefault(id, {})
    return FakeDatabase(self, id)

  async def close(self):
    self.closed = True


@pytest.fixture
def cosmos() -> FakeCosmosClient:
  """One database with a single-tenant (`/id`) and a multi-tenant (`/store_id`) container"""
  return FakeCosmosClient({
    'kv': {
      'single': FakeContainer(partition_key_path='/id'),
      'shared': FakeContainer(partition_key_path='/store_id'),
    }
  })


@pytest.fixture
def logs() -> list[tuple[str, str]]:
  return []


@pytest.fixture
def logger(logs) -> Logger:
  return Logger.of(lambda *objs, level: logs.append((level, ' '.join(map(str, objs)))))


@pytest.fixture
def make_kv(cosmos, logger):
  def _make(store_id: str | None = None, *, app_id: str | None = None) -> CosmosKV:
    container = 'single' if store_id is None else 'shared'
    return CosmosKV(cosmos, db='kv', container=container, app_id=app_id, scope=scope_of(store_id), logger=logger)  # type: ignore
  return _make


@pytest.fixture
def patched_client(monkeypatch: pytest.MonkeyPatch, cosmos: FakeCosmosClient) -> FakeCosmosClient:
  """Make `CosmosKV.new` build the fake client instead of a real one"""
  import cosmoskv.impl.cosmos as cosmos_impl

  def _client(endpoint: str, credential: str):
    cosmos.endpoint = endpoint
    cosmos.credential = credential
    return cosmos

  monkeypatch.setattr(cosmos_impl, 'CosmosClient', _client)
  return cosmos
