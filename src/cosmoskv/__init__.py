"""
### Cosmos KV
> Async key-value store over a partitioned Azure Cosmos DB container. Stores either own a container (partitioned by `/id`) or share one, scoped by `store_id`.
"""
import lazy_loader as lazy
__getattr__, __dir__, __all__ = lazy.attach_stub(__name__, __file__)