"""Client-side relay configuration and its persistence.

The configuration is kept as a small JSON document with string keys
(``scriptUrl``, ``serverUrl``, ``useServer``) and is read on every
submission attempt, then handed to the relay explicitly.
"""

import json
import logging
from pathlib import Path

import aiofiles
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path.home() / ".formrelay" / "client.json"


class RelayConfig(BaseModel):
    """Where the relay sends submissions.

    Attributes:
        script_url: Destination (spreadsheet append handler) URL
        server_url: Proxy server base URL, e.g. ``http://localhost:3000``
        use_server: Try the proxy before the destination
    """

    model_config = ConfigDict(populate_by_name=True)

    script_url: str | None = Field(default=None, alias="scriptUrl")
    server_url: str | None = Field(default=None, alias="serverUrl")
    use_server: bool = Field(default=False, alias="useServer")

    @property
    def proxy_enabled(self) -> bool:
        return self.use_server and bool(self.server_url)

    @property
    def submit_endpoint(self) -> str | None:
        if not self.server_url:
            return None
        return f"{self.server_url.rstrip('/')}/api/submit"

    @property
    def test_endpoint(self) -> str | None:
        if not self.server_url:
            return None
        return f"{self.server_url.rstrip('/')}/api/test-connection"


class ClientConfigStore:
    """JSON ファイルに RelayConfig を保存するストア

    Attributes:
        path: JSON file holding the configuration
    """

    def __init__(self, path: Path | str = DEFAULT_STORE_PATH) -> None:
        self.path = Path(path)

    async def load(self) -> RelayConfig:
        """保存済みの設定を読み込む

        A missing or malformed file loads as an empty configuration.
        """
        if not self.path.exists():
            return RelayConfig()

        try:
            async with aiofiles.open(self.path, mode="r", encoding="utf-8") as f:
                content = await f.read()
            return RelayConfig.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Ignoring malformed client config %s: %s", self.path, e)
            return RelayConfig()

    async def save(self, config: RelayConfig) -> None:
        """設定を保存する"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, mode="w", encoding="utf-8") as f:
            await f.write(config.model_dump_json(by_alias=True, indent=2))

    async def update(self, **values: object) -> RelayConfig:
        """Merge ``values`` (field names or aliases) into the stored config."""
        current = (await self.load()).model_dump(by_alias=True)
        aliases = {
            name: field.alias or name for name, field in RelayConfig.model_fields.items()
        }
        for key, value in values.items():
            current[aliases.get(key, key)] = value
        config = RelayConfig.model_validate(current)
        await self.save(config)
        return config

    async def clear(self) -> None:
        """設定ファイルを削除する"""
        if self.path.exists():
            self.path.unlink()
