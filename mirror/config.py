"""Configuration settings for the mirror engine."""

import os

from common.constants import FULL_SYNC_INTERVAL_SECONDS


DATABASE_PATH = os.environ.get("MIRROR_DATABASE_PATH", "./data/mirror.db")

FULL_SYNC_INTERVAL = int(os.environ.get("MIRROR_FULL_SYNC_INTERVAL", str(FULL_SYNC_INTERVAL_SECONDS)))

QUEUE_MAXSIZE = int(os.environ.get("MIRROR_QUEUE_MAXSIZE", "0"))
