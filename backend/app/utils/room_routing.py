"""
Routing policy for room creation during the backend migration.

Three independent flags decide whether a room is created through the remote
room service or directly in the local database:

  USE_BACKEND_FOR_ROOM_CREATION  opt in to the remote service
  FORCE_FIREBASE_FALLBACK        force the local path regardless
  DISABLE_BACKEND_COMPLETELY     kill switch for the remote service

Flags are read from the environment on every call.
"""

import enum
from dataclasses import dataclass

from app.config import env_flag


class RouteChoice(enum.Enum):
    USE_REMOTE = "remote"
    USE_LOCAL = "local"


@dataclass(frozen=True)
class MigrationFlags:
    use_backend: bool = False
    force_local: bool = False
    disable_backend: bool = False


def read_migration_flags() -> MigrationFlags:
    return MigrationFlags(
        use_backend=env_flag("USE_BACKEND_FOR_ROOM_CREATION"),
        force_local=env_flag("FORCE_FIREBASE_FALLBACK"),
        disable_backend=env_flag("DISABLE_BACKEND_COMPLETELY"),
    )


def choose_route(flags: MigrationFlags) -> RouteChoice:
    if flags.use_backend and not flags.force_local and not flags.disable_backend:
        return RouteChoice.USE_REMOTE
    return RouteChoice.USE_LOCAL
