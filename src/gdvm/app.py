from __future__ import annotations

from .client import GithubClient
from .config import Config
from .environment import Environment, ReleaseCatalog
from .platforms import Platform, current_platform
from .services import BuildTemplatesService, GodotService, VersionsService


class App:
    """Everything one command invocation needs, built from a ``Config``."""

    def __init__(self, config: Config, *, client: GithubClient | None = None, platform: Platform | None = None) -> None:
        self.config = config
        self.client = client or GithubClient(
            releases_url=config.releases_url,
            token=config.github_token,
            timeout_s=config.timeout_s,
        )
        self.environment = Environment(ReleaseCatalog(self.client), platform or current_platform())

        self.versions = VersionsService(self.environment)
        self.godot = GodotService(environment=self.environment, transport=self.client, config=config)
        self.build_templates = BuildTemplatesService(environment=self.environment, transport=self.client, config=config)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "App":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
