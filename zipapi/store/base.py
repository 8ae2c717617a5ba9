"""Store collaborator interface."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from zipapi.models.core import UploadedFile


class Store(ABC):
    """
    Durable record of uploaded files.

    ``save`` may be called concurrently from many requests; implementations
    guard their own state and raise ``StoreError`` on failure.
    """

    @abstractmethod
    async def init(self) -> None:
        """Prepare the backend before the first request is served."""
        ...

    @abstractmethod
    async def save(self, files: Sequence[UploadedFile]) -> None:
        """Persist a batch of files; the whole batch becomes visible at once or not at all."""
        ...
