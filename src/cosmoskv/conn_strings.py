from urllib.parse import urlparse, parse_qs, unquote
from pydantic import BaseModel
from cosmoskv import KV

class CosmosParams(BaseModel):
  key: str
  db: str
  container: str
  store: str | None = None
  app: str | None = None

def parse(conn_str: str) -> KV:
  parsed_url = urlparse(conn_str) # 'azure+cosmos://myaccount?key=...&db=kv&container=pairs'
  scheme = parsed_url.scheme # 'azure+cosmos'
  netloc = parsed_url.netloc # 'myaccount'
  path = unquote(parsed_url.path)
  endpoint = netloc + path # 'myaccount'
  query = parse_qs(parsed_url.query) # { 'db': ['kv'], ... }
  query = { k: v[0] for k, v in query.items() }

  if scheme == 'azure+cosmos':
    params = CosmosParams(**query)
    from cosmoskv import CosmosKV, CosmosConfig
    account = f'https://{endpoint}' if '.' in endpoint or ':' in endpoint else endpoint
    config = CosmosConfig(account=account, key=params.key, database=params.db, container=params.container) # type: ignore
    return CosmosKV.new(config, app_id=params.app, store_id=params.store)

  elif scheme == 'memory':
    from cosmoskv import DictKV
    return DictKV()

  else:
    raise ValueError(f'Unknown scheme: {scheme}')
