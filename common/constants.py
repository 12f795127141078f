"""Project-wide constants (id layout, notification topic, default intervals)."""

ID_SEPARATOR: str = "|"

STORAGE_CHANGED_TOPIC: str = "record-storage-changed"

FULL_SYNC_INTERVAL_SECONDS: int = 300
