from typing import List, Optional
import time
from dishguard.services.sources.base import MenuSource
from dishguard.services.sources.local import LocalMenuSource
from dishguard.models import Dish
from dishguard.core.logging_config import get_logger

logger = get_logger(__name__)

class MenuSourceError(Exception):
    def __init__(self, sources: List[str], errors: List[str]):
        super().__init__("Failed to load the menu from sources")
        self.sources = sources
        self.errors = errors

class MenuService:
    def __init__(self, sources: Optional[List[MenuSource]] = None):
        self.sources: List[MenuSource] = sources if sources is not None else [LocalMenuSource()]
        self.cache = {}
        self.cache_ttl_seconds = 30

    def get_dishes(self) -> List[Dish]:
        """
        Aggregates active dish snapshots from all registered sources.
        Raises MenuSourceError when nothing could be loaded and at least one source failed.
        """
        all_dishes = []
        errors = []

        now = time.time()
        for source in self.sources:
            try:
                cached = self.cache.get(source.name)
                if cached and (now - cached["timestamp"] < self.cache_ttl_seconds):
                    dishes = cached["dishes"]
                else:
                    dishes = source.get_dishes()
                    self.cache[source.name] = {
                        "timestamp": now,
                        "dishes": dishes
                    }
                all_dishes.extend(dishes)
            except Exception as e:
                logger.error(f"Error loading menu from source {source.name}: {e}")
                errors.append(f"{source.name}: {e}")

        if not all_dishes and errors:
            raise MenuSourceError([s.name for s in self.sources], errors)

        return [d for d in all_dishes if d.is_active]

    def get_dish(self, dish_id: str) -> Optional[Dish]:
        for dish in self.get_dishes():
            if dish.id == dish_id:
                return dish
        return None

    def clear_cache(self) -> None:
        self.cache = {}

menu_service = MenuService()
