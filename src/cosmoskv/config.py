from typing_extensions import Mapping
import base64
import binascii
import os
from pydantic import BaseModel, SecretStr
from cosmoskv import KVConnectionError, InvalidCredential

ENV_VARS = {
  'account': 'COSMOS_ACCOUNT',
  'key': 'COSMOS_AUTH_KEY',
  'database': 'COSMOS_DATABASE',
  'container': 'COSMOS_CONTAINER',
}

class CosmosConfig(BaseModel):
  """Connection to a Cosmos DB container. The container must already exist,
  partitioned by `/id` (single-tenant) or `/store_id` (multi-tenant)"""
  account: str
  """Account name (`myaccount`) or full endpoint URL"""
  key: SecretStr
  """Primary key of the account"""
  database: str
  container: str

  @property
  def endpoint(self) -> str:
    if self.account.startswith(('https://', 'http://')):
      return self.account
    return f'https://{self.account}.documents.azure.com:443/'

  def credential(self) -> str:
    """The account key, validated. Raises `InvalidCredential` if it isn't valid base64"""
    key = self.key.get_secret_value()
    try:
      if not key or not base64.b64decode(key, validate=True):
        raise InvalidCredential('Empty account key')
    except binascii.Error as e:
      raise InvalidCredential(f'Malformed account key: {e}') from e
    return key

  @classmethod
  def from_env(cls, env: Mapping[str, str] | None = None) -> 'CosmosConfig':
    """Read `COSMOS_ACCOUNT`, `COSMOS_AUTH_KEY`, `COSMOS_DATABASE` and `COSMOS_CONTAINER`"""
    env = os.environ if env is None else env
    missing = [var for var in ENV_VARS.values() if not env.get(var)]
    if missing:
      raise KVConnectionError(f'Missing environment variables: {", ".join(missing)}')
    return cls(**{ field: env[var] for field, var in ENV_VARS.items() })
