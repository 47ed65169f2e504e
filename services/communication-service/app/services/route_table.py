"""
Route Table
Binds each inbound route to its broker destination and operationId whitelist
"""

from types import MappingProxyType
from typing import Iterable, List, Optional

import structlog

from app.models.messages import RouteEntry
from app.services.schema_registry import SchemaRegistry

logger = structlog.get_logger(__name__)

USER_DELETION_TOPIC = "userRemoved"

DEFAULT_ROUTES = (
    RouteEntry(
        route_name="users-microservice",
        queue_name="users_microservice",
        allowed_operation_ids={"notificationNewPlanPayment", "requestAppUsers"},
    ),
    RouteEntry(
        route_name="courses-microservice",
        queue_name="courses_microservice",
        allowed_operation_ids={
            "publishNewCourseAccess",
            "responseAppClassesAndMaterials",
            "notificationNewClass",
            "notificationDeleteClass",
            "notificationAssociateMaterial",
            "notificationDisassociateMaterial",
            "requestMaterialReviews",
            "notificationUserDeletion",
        },
    ),
    RouteEntry(
        route_name="payments-microservice",
        queue_name="payments_microservice",
        allowed_operation_ids={"notificationUserDeletion"},
    ),
    RouteEntry(
        route_name="learning-microservice",
        queue_name="learning_microservice",
        allowed_operation_ids={
            "responseMaterialReviews",
            "requestAppClassesAndMaterials",
            "publishNewMaterialAccess",
            "notificationDeleteCourse",
            "responseAppUsers",
            "notificationUserDeletion",
        },
    ),
    # Fan-out to every service that keeps per-user state
    RouteEntry(
        route_name="user/notification",
        topic=USER_DELETION_TOPIC,
        allowed_operation_ids={"notificationUserDeletion"},
    ),
)


class RouteTable:
    """Immutable lookup of route entries by route name"""

    def __init__(self, routes: Iterable[RouteEntry] = DEFAULT_ROUTES):
        by_name = {}
        for entry in routes:
            if entry.route_name in by_name:
                raise ValueError(f"Duplicate route '{entry.route_name}'")
            by_name[entry.route_name] = entry
        self._routes = MappingProxyType(by_name)

    def resolve(self, route_name: str) -> Optional[RouteEntry]:
        """Return the entry for a route name, or None when it is not registered"""
        return self._routes.get(route_name)

    @staticmethod
    def is_operation_allowed(entry: RouteEntry, operation_id: object) -> bool:
        return isinstance(operation_id, str) and operation_id in entry.allowed_operation_ids

    def check_against(self, registry: SchemaRegistry) -> None:
        """Fail fast when a route whitelists an operationId that has no rule"""
        missing = sorted(
            f"{entry.route_name}:{operation_id}"
            for entry in self._routes.values()
            for operation_id in entry.allowed_operation_ids
            if operation_id not in registry
        )
        if missing:
            raise ValueError(f"Whitelisted operationIds without a validation rule: {missing}")
        logger.info("Route table checked", routes=len(self._routes))

    def __iter__(self):
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)

    @property
    def route_names(self) -> List[str]:
        return list(self._routes)


_route_table: Optional[RouteTable] = None


def get_route_table() -> RouteTable:
    """Get route table instance"""
    global _route_table
    if _route_table is None:
        _route_table = RouteTable()
    return _route_table
