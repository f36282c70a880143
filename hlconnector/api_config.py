"""Named API configurations for each deployment environment."""

from __future__ import annotations

from dataclasses import dataclass

from .types import ApiConfig

TESTNET_BASE_URL = "https://api.hyperliquid-testnet.xyz"
TESTNET_WS_URL = "wss://api.hyperliquid-testnet.xyz/ws"
MAINNET_BASE_URL = "https://api.hyperliquid.xyz"
MAINNET_WS_URL = "wss://api.hyperliquid.xyz/ws"


@dataclass
class ApiConfigTemplate:
    """An API configuration with a name, description and environment."""

    name: str
    description: str
    config: ApiConfig
    environment: str

    @classmethod
    def development(cls) -> ApiConfigTemplate:
        return cls(
            name="Development",
            description="Development environment configuration",
            config=ApiConfig(
                base_url=TESTNET_BASE_URL,
                ws_url=TESTNET_WS_URL,
                timeout_ms=10000,
                max_retries=5,
                retry_delay_ms=2000,
            ),
            environment="development",
        )

    @classmethod
    def staging(cls) -> ApiConfigTemplate:
        return cls(
            name="Staging",
            description="Staging environment configuration",
            config=ApiConfig(
                base_url=MAINNET_BASE_URL,
                ws_url=MAINNET_WS_URL,
                timeout_ms=5000,
                max_retries=3,
                retry_delay_ms=1000,
            ),
            environment="staging",
        )

    @classmethod
    def production(cls) -> ApiConfigTemplate:
        return cls(
            name="Production",
            description="Production environment configuration",
            config=ApiConfig(
                base_url=MAINNET_BASE_URL,
                ws_url=MAINNET_WS_URL,
                timeout_ms=3000,
                max_retries=2,
                retry_delay_ms=500,
            ),
            environment="production",
        )

    @classmethod
    def all_templates(cls) -> dict[str, ApiConfigTemplate]:
        return {
            "development": cls.development(),
            "staging": cls.staging(),
            "production": cls.production(),
        }