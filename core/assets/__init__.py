"""
Assets module
Versioned on-disk storage for blueprints
"""

from .store import BlueprintStore, BlueprintStoreError, store_key

__all__ = ['BlueprintStore', 'BlueprintStoreError', 'store_key']
