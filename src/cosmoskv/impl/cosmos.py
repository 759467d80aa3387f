from typing_extensions import TypeVar, Callable, Awaitable, ParamSpec, Concatenate, AsyncIterator, Sequence, Any
from dataclasses import dataclass, field, KW_ONLY
from functools import wraps, cached_property
from azure.core.exceptions import AzureError
from azure.cosmos import PartitionKey
from azure.cosmos.aio import CosmosClient, ContainerProxy
from azure.cosmos.exceptions import CosmosResourceNotFoundError
from dslog import Logger
from cosmoskv import KV, StoreError, CosmosConfig, Pair
from cosmoskv.query import Query, Scope, SingleTenant, scope_of, point_query, in_query, scan_query

S = TypeVar('S', bound='CosmosKV')
T = TypeVar('T')
Ps = ParamSpec('Ps')

def default_logger() -> Logger:
  return Logger.stderr().prefix('[COSMOS KV]').limit('WARNING')

def store_safe(coro: Callable[Concatenate[S, Ps], Awaitable[T]]) -> Callable[Concatenate[S, Ps], Awaitable[T]]:
  """Translate document store failures into `StoreError`, logging the original"""
  @wraps(coro)
  async def wrapper(self: S, *args: Ps.args, **kwargs: Ps.kwargs) -> T:
    try:
      return await coro(self, *args, **kwargs)
    except AzureError as e:
      raise self.failure(e) from e
  return wrapper

@dataclass
class CosmosKV(KV):
  """`KV` over a partitioned Cosmos DB container.

  - Single-tenant (`store_id=None`): one container per store, partitioned by `/id`
  - Multi-tenant (`store_id='...'`): stores share a container partitioned by `/store_id`,
    and every document and query is scoped to the store
  """
  client: CosmosClient
  _: KW_ONLY
  db: str
  container: str
  app_id: str | None = None
  scope: Scope = field(default_factory=SingleTenant)
  logger: Logger = field(default_factory=default_logger)

  def __repr__(self):
    return f'CosmosKV(database={self.db}, container={self.container}, app_id={self.app_id}, store_id={self.scope.store_id})'

  @staticmethod
  def new(
    config: CosmosConfig, *, app_id: str | None = None,
    store_id: str | None = None, logger: Logger | None = None
  ) -> 'CosmosKV':
    """Connects lazily: no request is made until the first operation. Raises `InvalidCredential` for a malformed key"""
    client = CosmosClient(config.endpoint, credential=config.credential())
    return CosmosKV(
      client, db=config.database, container=config.container,
      app_id=app_id, scope=scope_of(store_id), logger=logger or default_logger()
    )

  @cached_property
  def container_client(self) -> ContainerProxy:
    return self.client.get_database_client(self.db).get_container_client(self.container)

  def failure(self, e: Exception) -> StoreError:
    self.logger(f'Key-value store error: {e!r}', level='ERROR')
    return StoreError()

  def query(self, query: Query, *, partition_key: str | None = None, max_item_count: int | None = None):
    """Run `query`, cross-partition unless `partition_key` is given"""
    self.logger(f'Query: {query.text}', level='DEBUG')
    kwargs: dict[str, Any] = {}
    if partition_key is not None:
      kwargs['partition_key'] = partition_key
    if max_item_count is not None:
      kwargs['max_item_count'] = max_item_count
    return self.container_client.query_items(query=query.text, parameters=query.parameters, **kwargs) # type: ignore

  async def pairs(self, query: Query) -> AsyncIterator[Pair]:
    """Stream the pairs matching `query` (cross-partition), page by page"""
    try:
      async for page in self.query(query).by_page():
        async for item in page:
          yield Pair.parse(item)
    except AzureError as e:
      raise self.failure(e) from e

  @store_safe
  async def get_pair(self, key: str) -> Pair | None:
    query = self.query(point_query(key, self.scope), partition_key=self.scope.partition_key(key), max_item_count=1)
    # keys are unique within the scope: only the first result of the first page matters
    pair = None
    async for page in query.by_page():
      async for item in page:
        pair = Pair.parse(item)
        break
      break
    return pair

  async def get(self, key: str) -> bytes | None:
    pair = await self.get_pair(key)
    return pair.value if pair is not None else None

  async def exists(self, key: str) -> bool:
    return await self.get_pair(key) is not None

  @store_safe
  async def set(self, key: str, value: bytes):
    pair = Pair(id=key, value=value, store_id=self.scope.store_id)
    await self.container_client.upsert_item(pair.document())

  async def delete(self, key: str):
    if (pair := await self.get_pair(key)) is not None:
      await self.delete_item(pair)

  @store_safe
  async def delete_item(self, pair: Pair):
    try:
      await self.container_client.delete_item(item=pair.id, partition_key=pair.partition_key)
    except CosmosResourceNotFoundError:
      ... # deleted concurrently after the existence check

  async def iter_many(self, keys: Sequence[str]) -> AsyncIterator[tuple[str, bytes | None]]: # type: ignore
    """Stream existing `(key, value)`s in the order the store returns them. Missing keys are not yielded"""
    keys = list(keys)
    if not keys:
      return
    async for pair in self.pairs(in_query(keys, self.scope)):
      yield pair.id, pair.value

  async def keys(self) -> AsyncIterator[str]:
    async for pair in self.pairs(scan_query(self.scope)):
      yield pair.id

  async def items(self) -> AsyncIterator[tuple[str, bytes]]:
    async for pair in self.pairs(scan_query(self.scope)):
      yield pair.id, pair.value

  @store_safe
  async def create_container(self):
    """Create the database and container if needed, partitioned as the scope requires"""
    db = await self.client.create_database_if_not_exists(self.db)
    await db.create_container_if_not_exists(
      id=self.container, partition_key=PartitionKey(path=self.scope.partition_key_path)
    )

  async def close(self):
    await self.client.close()
