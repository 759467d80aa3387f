from dataclasses import dataclass, field
from cosmoskv import KV

@dataclass
class DictKV(KV):
  """In-memory `KV` implementation over a built-in dict"""
  xs: dict[str, bytes] = field(default_factory=dict)

  async def set(self, key: str, value: bytes):
    self.xs[key] = bytes(value)

  async def get(self, key: str):
    return self.xs.get(key)

  async def delete(self, key: str):
    self.xs.pop(key, None)

  async def keys(self):
    for key in list(self.xs.keys()):
      yield key

  async def items(self):
    for key, value in list(self.xs.items()):
      yield key, value

  async def clear(self):
    self.xs.clear()
