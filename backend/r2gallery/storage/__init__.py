"""
Storage module for S3-compatible object storage (Cloudflare R2).
"""
from r2gallery.storage.base import ObjectStore, StorageError
from r2gallery.storage.r2_client import R2Client, build_object_store

__all__ = ["ObjectStore", "StorageError", "R2Client", "build_object_store"]
