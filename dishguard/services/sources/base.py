from abc import ABC, abstractmethod
from typing import List
from dishguard.models import Dish

class MenuSource(ABC):
    name: str = "Unknown"

    @abstractmethod
    def get_dishes(self) -> List[Dish]:
        """
        Load a read-only snapshot of the menu.
        Must return fully resolved `Dish` graphs (ingredients, substitutes, cooking steps).
        """
        pass
