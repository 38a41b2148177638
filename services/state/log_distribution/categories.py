"""Settings-backed category directory."""

from __future__ import annotations

from collections.abc import Iterable

from services.state.log_distribution.config import CategoryRouteSettings


class StaticCategoryDirectory:
    """Category routing read from ``category_routes`` settings.

    Unknown categories are treated as non-distributing.
    """

    def __init__(self, routes: Iterable[CategoryRouteSettings] = ()) -> None:
        self._routes: dict[tuple[str, str], CategoryRouteSettings] = {
            (route.category_id, route.plant): route for route in routes
        }

    def is_distribution_enabled(self, *, category_id: str, plant: str) -> bool:
        route = self._routes.get((category_id, plant))
        return route is not None and route.distribution_enabled

    def get_distribution_targets(self, *, category_id: str, plant: str) -> list[str]:
        route = self._routes.get((category_id, plant))
        if route is None:
            return []
        return list(route.workcenters)
