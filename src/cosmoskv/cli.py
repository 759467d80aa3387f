import typer

app = typer.Typer()

@app.callback()
def callback(debug: bool = typer.Option(False, '--debug', help='Enable debug mode')):
  if debug:
    import debugpy
    debugpy.listen(5678)
    print('Waiting for debugger attach...')
    debugpy.wait_for_client()

def env_kv(app_id: str | None, store_id: str | None):
  from cosmoskv import CosmosKV, CosmosConfig
  from dslog import Logger
  return CosmosKV.new(
    CosmosConfig.from_env(), app_id=app_id, store_id=store_id,
    logger=Logger.click().prefix('[COSMOS KV]').limit('INFO')
  )

@app.command()
def demo(
  app_id: str = typer.Option('cosmos', '--app', envvar='COSMOS_APP_ID'),
  store_id: str = typer.Option('default', '--store', envvar='COSMOS_STORE_ID'),
):
  """Times a `set` and a `get` against the container configured by `COSMOS_*` env vars"""
  import asyncio
  import time
  from dslog import Logger
  logger = Logger.click().prefix('[DEMO]')

  async def run():
    async with env_kv(app_id, store_id) as kv:
      start = time.perf_counter()
      await kv.set('key', b'value')
      logger(f'Set execution time: {time.perf_counter() - start:.3f}s')

      start = time.perf_counter()
      value = await kv.get('key')
      logger(f'Get execution time: {time.perf_counter() - start:.3f}s')

      if value is None:
        logger('key not found', level='WARNING')
      else:
        logger(f'Value is: {value.decode(errors="replace")!r}')

  asyncio.run(run())

@app.command()
def init(
  store_id: str = typer.Option('', '--store', envvar='COSMOS_STORE_ID', help='Multi-tenant store id. Partitions by /store_id instead of /id'),
):
  """Creates the database and container configured by `COSMOS_*` env vars"""
  import asyncio

  async def run():
    async with env_kv(None, store_id or None) as kv:
      await kv.create_container()
      print(f'Created {kv!r}, partitioned by {kv.scope.partition_key_path}')

  asyncio.run(run())

@app.command()
def keys(conn_str: str):
  """Lists all keys in `KV.of(conn_str)`"""
  import asyncio
  from cosmoskv import KV

  async def run():
    async with KV.of(conn_str) as kv:
      async for key in kv.keys():
        print(key)

  asyncio.run(run())

@app.command()
def test(conn_str: str):
  """Performs some basic tests on `KV.of(conn_str)`. The store must be empty"""
  import asyncio
  from dslog import Logger
  from cosmoskv import KV
  from cosmoskv.tests import test
  logger = Logger.click().prefix('[TEST]')

  async def tests():
    async with KV.of(conn_str) as kv:
      logger(f'Testing {kv!r}...')
      errors = await test(kv)
    if not errors:
      logger('--> OK')
    else:
      logger(f'--> {len(errors)} errors', level='ERROR')
      for e in errors:
        logger(e, level='ERROR')
    return errors

  errors = asyncio.run(tests())
  if errors:
    raise typer.Exit(1)
