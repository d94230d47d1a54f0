from .object_storage_port import ObjectStoragePort, StoredObject

__all__ = ["ObjectStoragePort", "StoredObject"]
