from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from core.dates import Clock
from core.schema import SchemaRegistry

from .base import DEFAULT_PRIVILEGED_ROLE
from .checklist import ChecklistStore
from .delegation import DelegationStore
from .notification import NotificationStore
from .todo import TodoStore
from .user import DepartmentStore, UserStore


@dataclass
class StoreSet:
    """
    Every entity store the API serves, wired to one transport.
    """
    delegations: DelegationStore
    checklists: ChecklistStore
    todos: TodoStore
    notifications: NotificationStore
    users: UserStore
    departments: DepartmentStore
    registry: SchemaRegistry
    transport: Any
    documents: Dict[str, str]


def build_stores(
    transport: Any,
    documents: Dict[str, str],
    registry: Optional[SchemaRegistry] = None,
    clock: Optional[Clock] = None,
    privileged_role: str = DEFAULT_PRIVILEGED_ROLE,
) -> StoreSet:
    """
    Args:
        transport: SheetsTransport implementation
        documents: family name -> spreadsheet id
                   ("delegation", "users", "todos", "checklists")
    """
    registry = registry if registry is not None else SchemaRegistry()

    def _kw(family: str) -> Dict[str, Any]:
        return {
            "transport": transport,
            "document_id": documents[family],
            "registry": registry,
            "clock": clock,
            "privileged_role": privileged_role,
        }

    return StoreSet(
        delegations=DelegationStore(**_kw("delegation")),
        checklists=ChecklistStore(**_kw("checklists")),
        todos=TodoStore(**_kw("todos")),
        notifications=NotificationStore(**_kw("users")),
        users=UserStore(**_kw("users")),
        departments=DepartmentStore(**_kw("users")),
        registry=registry,
        transport=transport,
        documents=dict(documents),
    )


__all__ = [
    "StoreSet",
    "build_stores",
    "ChecklistStore",
    "DelegationStore",
    "DepartmentStore",
    "NotificationStore",
    "TodoStore",
    "UserStore",
]
