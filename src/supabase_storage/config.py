"""
Client configuration for the Supabase Storage client
"""

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

STORAGE_PATH = "/storage/v1"
HEADER_API_KEY = "apikey"

ENV_URL = "SUPABASE_URL"
ENV_API_KEY = "SUPABASE_API_KEY"


@dataclass(frozen=True)
class StorageConfig:
    """
    Storage endpoint and credential shared by every request.

    ``url`` is the storage endpoint itself, e.g.
    ``https://<project>.supabase.co/storage/v1``. Use :meth:`for_project`
    to derive it from a project URL.
    """

    url: str
    api_key: str = field(repr=False)
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("Storage url must not be empty.")
        if not self.api_key:
            raise ValueError("Storage api_key must not be empty.")
        object.__setattr__(self, "url", self.url.rstrip("/"))
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @classmethod
    def for_project(
        cls,
        project_url: str,
        api_key: str,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "StorageConfig":
        """Build a config from a project URL such as ``https://abc.supabase.co``."""
        if not project_url:
            raise ValueError("Project url must not be empty.")
        return cls(
            url=f"{project_url.rstrip('/')}{STORAGE_PATH}",
            api_key=api_key,
            headers=headers or {},
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StorageConfig":
        """Build a config from ``SUPABASE_URL`` and ``SUPABASE_API_KEY``."""
        env = os.environ if environ is None else environ
        values = {}
        for name in (ENV_URL, ENV_API_KEY):
            value = env.get(name)
            if not value:
                raise ValueError(f"Environment variable {name} is not set.")
            values[name] = value
        return cls.for_project(values[ENV_URL], values[ENV_API_KEY])

    def request_headers(self) -> Dict[str, str]:
        """Default headers sent with every request."""
        headers = {
            HEADER_API_KEY: self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }
        headers.update(self.headers)
        return headers
