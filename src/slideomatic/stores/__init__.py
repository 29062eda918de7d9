"""Asset store client implementations."""

from slideomatic.stores.http import HttpAssetStore

__all__ = ["HttpAssetStore"]
