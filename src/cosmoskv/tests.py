from typing import Mapping
from cosmoskv import KV

DEFAULT_ITEMS = {'a': b'1', 'b': b'2', 'c': b'3'}

async def test(kv: KV, items: Mapping[str, bytes] = DEFAULT_ITEMS) -> list[str]:
  """Check the `KV` contract on an empty `kv`. Returns a list of errors (empty if all good)"""
  keys = await kv.get_keys()
  if keys != []:
    raise ValueError('KV must be empty for testing')

  errors = []

  await kv.set_many(items.items())

  for k, v in items.items():
    if (r := await kv.get(k)) != v:
      errors.append(f'Point read error. Expected: {v!r} Got: {r!r}')

  k, v = next(iter(items.items()))
  await kv.set(k, b'overwritten')
  if (r := await kv.get(k)) != b'overwritten':
    errors.append(f'Upsert error. Expected: {b"overwritten"!r} Got: {r!r}')
  await kv.set(k, v)

  keys = await kv.get_keys()
  if set(keys) != set(items.keys()):
    errors.append(f'Keys error. Expected: {set(items.keys())} Got: {set(keys)}')

  missing = '__missing__'
  many = await kv.get_many([k, missing])
  if many != [(k, v)]:
    errors.append(f'Get many error. Expected: {[(k, v)]} Got: {many}')

  if not await kv.exists(k) or await kv.exists(missing):
    errors.append(f'Exists error. Expected {k!r} to exist and {missing!r} not to')

  for k in items.keys():
    await kv.delete(k)
    await kv.delete(k)
    if (r := await kv.get(k)) is not None:
      errors.append(f'Point delete error. Expected: None Got: {r!r}')

  await kv.set_many(items.items())
  await kv.clear()
  keys = await kv.get_keys()
  if keys != []:
    errors.append(f'Clear error. Expected: [] Got: {keys}')

  return errors
