from typing_extensions import Any
import base64
from pydantic import BaseModel, ValidationError, field_validator, field_serializer
from cosmoskv import InvalidData

class Pair(BaseModel):
  """A key-value entry, as stored in the Cosmos container"""
  id: str
  value: bytes
  store_id: str | None = None

  @field_validator('value', mode='before')
  @classmethod
  def decode_value(cls, value: Any):
    """Values are base64 strings, though byte arrays (lists of ints) are accepted too"""
    if isinstance(value, str):
      return base64.b64decode(value, validate=True)
    if isinstance(value, list) and all(isinstance(b, int) for b in value):
      return bytes(value)
    return value

  @field_serializer('value')
  def encode_value(self, value: bytes) -> str:
    return base64.b64encode(value).decode()

  @property
  def partition_key(self) -> str:
    return self.store_id if self.store_id is not None else self.id

  def document(self) -> dict[str, Any]:
    """JSON document to upsert. `store_id` is omitted entirely when absent"""
    return self.model_dump(exclude_none=True)

  @classmethod
  def parse(cls, document: dict[str, Any]) -> 'Pair':
    try:
      return cls.model_validate(document)
    except ValidationError as e:
      raise InvalidData(str(e)) from e
