"""API keys and request authentication for the MDM engine API.

Keys live in ``.mdm/config.toml`` under ``api_keys``, keyed by the secret.
A key grants ``read`` or ``write`` and may be limited to a list of spaces;
its name is recorded as the caller of every write made with it.
"""

import os
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional
from pathlib import Path

from fastapi import HTTPException, Security, Depends, Query
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, ConfigDict, Field

from mdmengine.config import Config, CONFIG_DIR_NAME
from mdmengine.core.path_utils import get_project_root
from mdmengine.managers.base import EngineContext

Permission = Literal["read", "write"]

# Each permission includes everything ranked below it
PERMISSION_RANK = {"read": 0, "write": 1}

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


class APIKey(BaseModel):
    """A stored API key."""

    key: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    permissions: Permission = "read"
    spaces: Optional[List[str]] = None
    active: bool = True

    def grants(self, permission: str) -> bool:
        return PERMISSION_RANK[self.permissions] >= PERMISSION_RANK[permission]

    def to_config(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "permissions": self.permissions,
            "active": self.active,
        }
        # TOML has no null; a missing entry means every space
        if self.spaces is not None:
            entry["spaces"] = self.spaces
        return entry

    @classmethod
    def from_config(cls, key: str, entry: Dict[str, Any]) -> "APIKey":
        return cls(
            key=key,
            name=entry["name"],
            created_at=datetime.fromisoformat(entry["created_at"]),
            permissions=entry.get("permissions", "read"),
            spaces=entry.get("spaces"),
            active=entry.get("active", True),
        )


class APIKeyManager:
    """Reads and writes the API keys of one project."""

    def __init__(self, project_dir: Optional[Path] = None):
        self.project_dir = project_dir or Path.cwd()
        self.config = Config(self.project_dir)

    def _update(self, change: Callable[[Dict[str, Dict[str, Any]]], bool]) -> bool:
        """Apply ``change`` to the stored key table and save if it reports a change."""
        config_data = self.config.load()
        keys = dict(config_data.api_keys or {})
        if not change(keys):
            return False
        config_data.api_keys = keys
        self.config.save(config_data)
        return True

    def create_key(
        self,
        name: str,
        permissions: Permission = "read",
        spaces: Optional[List[str]] = None,
    ) -> APIKey:
        """Create and store a new API key.

        Args:
            name: Caller identity recorded for writes made with the key
            permissions: ``read`` or ``write``
            spaces: Spaces the key may see; None for all of them

        Raises:
            ValueError: ``name`` is blank or ``spaces`` names no space
        """
        name = name.strip()
        if not name:
            raise ValueError("API key name cannot be empty")
        if spaces is not None:
            spaces = list(dict.fromkeys(s.strip() for s in spaces if s.strip()))
            if not spaces:
                raise ValueError("A space-restricted key needs at least one space")

        api_key = APIKey(name=name, permissions=permissions, spaces=spaces)

        def add(keys):
            keys[api_key.key] = api_key.to_config()
            return True

        self._update(add)
        return api_key

    def get_key(self, key: str) -> Optional[APIKey]:
        """Return the key if it exists and has not been revoked."""
        entry = (self.config.load().api_keys or {}).get(key)
        if entry is None or not entry.get("active", True):
            return None
        return APIKey.from_config(key, entry)

    def list_keys(self) -> List[APIKey]:
        keys = self.config.load().api_keys or {}
        return [APIKey.from_config(key, entry) for key, entry in keys.items()]

    def revoke_key(self, key: str) -> bool:
        """Mark a key inactive; False if no such key exists."""

        def deactivate(keys):
            if key not in keys:
                return False
            keys[key] = {**keys[key], "active": False}
            return True

        return self._update(deactivate)


class AuthContext(BaseModel):
    """The authenticated key and the project it was checked against."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    api_key: APIKey
    project_dir: Path

    def engine(self) -> EngineContext:
        """Engine context restricted to the key's spaces, acting as the key's name."""
        config = Config(self.project_dir).load()
        return EngineContext(
            project_root=self.project_dir,
            tenant=config.tenant,
            allowed_spaces=self.api_key.spaces,
            caller=self.api_key.name,
        )


async def get_current_project(project_dir: Optional[str] = None) -> Path:
    """Locate the project served by this request.

    Uses the ``project_dir`` query parameter, then ``MDM_PROJECT_DIR``, then
    searches upwards from the working directory.
    """
    project_dir = project_dir or os.environ.get("MDM_PROJECT_DIR")
    if project_dir:
        path = Path(project_dir)
        if not (path / CONFIG_DIR_NAME).exists():
            raise HTTPException(status_code=404, detail="Project not found")
        return path

    try:
        return get_project_root(Path.cwd())
    except FileNotFoundError:
        raise HTTPException(
            status_code=404,
            detail="No MDM project found. Specify project_dir parameter.",
        )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401, detail=detail, headers={"WWW-Authenticate": "ApiKey"}
    )


async def verify_api_key(
    api_key_header: Optional[str] = Security(api_key_header),
    api_key_query: Optional[str] = Query(None, alias="api_key"),
    project_dir: Path = Depends(get_current_project),
) -> AuthContext:
    """Authenticate the request by the ``X-API-Key`` header or ``api_key`` parameter."""
    secret = api_key_header or api_key_query
    if not secret:
        raise _unauthorized("API key required")

    api_key = APIKeyManager(project_dir).get_key(secret)
    if api_key is None:
        raise _unauthorized("Invalid API key")

    return AuthContext(api_key=api_key, project_dir=project_dir)


def require_permission(permission: Permission):
    """Build a dependency that rejects keys below ``permission`` with 403."""

    async def dependency(auth: AuthContext = Depends(verify_api_key)) -> AuthContext:
        if not auth.api_key.grants(permission):
            raise HTTPException(
                status_code=403,
                detail=f"{permission.capitalize()} permission required",
            )
        return auth

    return dependency


require_read_permission = require_permission("read")
require_write_permission = require_permission("write")
