"""
Partition scopes and Cosmos SQL query builders.

Every value (keys, store id) is bound as a query parameter; nothing is ever
interpolated into the query text.
"""
from typing_extensions import Sequence, TypedDict, Literal
from dataclasses import dataclass, field

@dataclass(frozen=True)
class SingleTenant:
  """One container per logical store. Each document is partitioned by its own key."""
  store_id: None = field(default=None, init=False)
  partition_key_path: Literal['/id'] = field(default='/id', init=False)

  def partition_key(self, key: str) -> str:
    return key

@dataclass(frozen=True)
class MultiTenant:
  """Many logical stores share a container. All keys of a store co-locate on the `store_id` partition."""
  store_id: str
  partition_key_path: Literal['/store_id'] = field(default='/store_id', init=False)

  def partition_key(self, key: str) -> str:
    return self.store_id

Scope = SingleTenant | MultiTenant

def scope_of(store_id: str | None) -> Scope:
  return SingleTenant() if store_id is None else MultiTenant(store_id)


class Parameter(TypedDict):
  name: str
  value: str

@dataclass(frozen=True)
class Query:
  text: str
  parameters: list[Parameter] = field(default_factory=list)


def append_store_id_condition(query: Query, scope: Scope, condition_already_exists: bool) -> Query:
  """Filter `query` by `c.store_id` in multi-tenant mode. No-op in single-tenant mode."""
  match scope:
    case MultiTenant(store_id=store_id):
      keyword = 'AND' if condition_already_exists else 'WHERE'
      return Query(
        f'{query.text} {keyword} c.store_id = @store_id',
        [*query.parameters, Parameter(name='@store_id', value=store_id)],
      )
    case SingleTenant():
      return query

def point_query(key: str, scope: Scope) -> Query:
  query = Query('SELECT * FROM c WHERE c.id = @id', [Parameter(name='@id', value=key)])
  return append_store_id_condition(query, scope, True)

def in_query(keys: Sequence[str], scope: Scope) -> Query:
  if not keys:
    raise ValueError('`in_query` requires at least one key')
  params = [Parameter(name=f'@key{i}', value=key) for i, key in enumerate(keys)]
  in_clause = ', '.join(p['name'] for p in params)
  query = Query(f'SELECT * FROM c WHERE c.id IN ({in_clause})', params)
  return append_store_id_condition(query, scope, True)

def scan_query(scope: Scope) -> Query:
  return append_store_id_condition(Query('SELECT * FROM c'), scope, False)
