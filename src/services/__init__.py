from src.services import (
    children_service,
    completion_service,
    family_member_service,
    ownership_service,
    status_service,
    task_service,
)


__all__ = [
    "children_service",
    "completion_service",
    "family_member_service",
    "ownership_service",
    "status_service",
    "task_service",
]
