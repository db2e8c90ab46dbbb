"""
Metadata catalog interface.
"""

from abc import abstractmethod
from typing import List, Set

from ..domain.models import AssetRecord
from .lifecycle import IComponent


class IMetadataCatalog(IComponent):
    """
    Durable index of finalized assets.

    The whole catalog lives in memory; put and remove persist the full
    document before returning.
    """

    @abstractmethod
    def get(self, asset_id: str) -> AssetRecord:
        """Raises AssetNotFound for unknown ids."""
        pass

    @abstractmethod
    def list(self) -> List[AssetRecord]:
        pass

    @abstractmethod
    def contains(self, asset_id: str) -> bool:
        pass

    @abstractmethod
    def locators(self) -> Set[str]:
        """Storage locators referenced by catalogued assets."""
        pass

    @property
    @abstractmethod
    def count(self) -> int:
        pass

    @abstractmethod
    async def put(self, record: AssetRecord) -> None:
        pass

    @abstractmethod
    async def remove(self, asset_id: str) -> AssetRecord:
        pass
