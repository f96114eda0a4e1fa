from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Nested field shapes. Both are stored as JSON text in a single column.
ARRAY = "array"
VALUE = "value"

NEVER_LOGGED_IN = "1970-01-01T00:00:00.000Z"

INTERACTION_TYPES = ("generate_packet", "explain_attribute")
USER_ROLES = ("admin", "editor", "viewer", "operator")
USER_STATUSES = ("active", "invited", "suspended")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    column: str
    nested: str | None = None
    timestamp: bool = False
    secret: bool = False

    def empty(self) -> Any:
        if self.nested == ARRAY:
            return []
        if self.nested == VALUE:
            return None
        return ""


@dataclass(frozen=True)
class ResourceSpec:
    """Everything the generic list/create/get endpoints need to know about one table.

    ``sortable`` and ``filters`` map query-parameter names to columns; only
    columns named here ever reach the SQL text.
    """

    kind: str
    label: str
    table: str
    fields: tuple[FieldSpec, ...]
    writable: tuple[str, ...]
    required: tuple[str, ...]
    default_order: tuple[str, bool]
    timestamp_field: str | None = None
    sortable: tuple[tuple[str, str], ...] = ()
    searchable: tuple[str, ...] = ()
    filters: tuple[tuple[str, str], ...] = ()
    enums: tuple[tuple[str, tuple[str, ...]], ...] = ()
    create_defaults: tuple[tuple[str, Any], ...] = ()
    conflict_message: str = "Record already exists."

    def field(self, name: str) -> FieldSpec:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)

    @property
    def readable_columns(self) -> list[str]:
        return [f.column for f in self.fields if not f.secret]

    def sort_column(self, sort_by: str | None) -> str | None:
        return dict(self.sortable).get(sort_by or "")

    def allowed_values(self, name: str) -> tuple[str, ...] | None:
        return dict(self.enums).get(name)


INTERACTIONS = ResourceSpec(
    kind="ai-interactions",
    label="AI interaction",
    table="ai_interactions",
    fields=(
        FieldSpec("id", "id"),
        FieldSpec("interactionType", "interaction_type"),
        FieldSpec("userInput", "user_input", nested=VALUE),
        FieldSpec("aiOutput", "ai_output", nested=VALUE),
        FieldSpec("timestamp", "created_at", timestamp=True),
    ),
    writable=("interactionType", "userInput", "aiOutput"),
    required=("interactionType", "userInput", "aiOutput"),
    default_order=("created_at", True),
    timestamp_field="timestamp",
    sortable=(("timestamp", "created_at"),),
    searchable=("interaction_type",),
    filters=(("interactionType", "interaction_type"),),
    enums=(("interactionType", INTERACTION_TYPES),),
)

SCENARIOS = ResourceSpec(
    kind="scenarios",
    label="scenario",
    table="scenarios",
    fields=(
        FieldSpec("id", "id"),
        FieldSpec("name", "name"),
        FieldSpec("description", "description"),
        FieldSpec("variables", "variables", nested=ARRAY),
        FieldSpec("steps", "steps", nested=ARRAY),
        FieldSpec("tags", "tags", nested=ARRAY),
        FieldSpec("lastModified", "last_modified", timestamp=True),
    ),
    writable=("name", "description", "variables", "steps", "tags"),
    required=("name",),
    default_order=("name", False),
    timestamp_field="lastModified",
    sortable=(("lastModified", "last_modified"),),
    searchable=("name", "description", "tags"),
)

USERS = ResourceSpec(
    kind="users",
    label="user",
    table="users",
    fields=(
        FieldSpec("id", "id"),
        FieldSpec("email", "email"),
        FieldSpec("name", "name"),
        FieldSpec("role", "role"),
        FieldSpec("status", "status"),
        FieldSpec("lastLogin", "last_login", timestamp=True),
        FieldSpec("password", "password_hash", secret=True),
    ),
    writable=("email", "name", "role", "password"),
    required=("email", "name", "role"),
    default_order=("name", False),
    sortable=(("lastLogin", "last_login"),),
    searchable=("email", "name"),
    filters=(("role", "role"), ("status", "status")),
    enums=(("role", USER_ROLES), ("status", USER_STATUSES)),
    create_defaults=(("status", "invited"), ("lastLogin", NEVER_LOGGED_IN)),
    conflict_message="Email already exists.",
)
