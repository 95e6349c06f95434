from __future__ import annotations

BUILDINGS = ("DC1", "DC5", "DC11", "DC14", "DC18", "DC301")
# Filter value meaning "every building".
ALL_BUILDINGS = "ALL"
