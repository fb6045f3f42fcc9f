"""
Application settings built from environment variables and the optional .env file.

Every external URL, retry constant, staleness threshold, scoring weight and
multiplier factor lives here so the pure scoring code and the fetchers take
plain values and stay testable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from backend_megarank.config.env import (
    env_factor,
    env_float,
    env_int,
    env_list,
    env_str,
    get_database_url,
    load_megarank_env,
)

DEFAULT_EXPLORER_URL = "https://megaeth.blockscout.com/api/v2"
DEFAULT_DOMAIN_API_URL = "https://api.dotmega.domains"
DEFAULT_NEYNAR_API_URL = "https://api.neynar.com/v2/farcaster"

# Mainnet launch (2025-02-09 00:00 UTC); first activity at or before it earns the OG bonus
DEFAULT_NETWORK_LAUNCH_TIMESTAMP = 1739059200

FEATURED_NFT_CONTRACT = "0x5d38451841ee7a2e824a88afe47b00402157b08d"  # Protardio
NATIVE_NFT_CONTRACTS: tuple[str, ...] = (
    "0xa7911e22b9bba3af9d43bbae3491aa50396cc453",  # Badly Drawn Barrys
    "0x89ff7a37bf8851bcbee20b1032afc583f89b40ff",  # Bad Bunnz
    "0x19f9b860eb96b574af72f639cc15cfe2685053a0",  # Glitchy Bunnies
    "0x3fd43a658915a7ce5ae0a2e48f72b9fce7ba0c44",  # World Computer Netizens
    "0x015061aa806b5abab9ee453e366e18a713e8ea80",  # Legend of Breadio
    "0x2e5902a40115bf36739949d9875be0bcd2384c05",  # Nacci Cartel
)


@dataclass(frozen=True)
class ExplorerSettings:
    base_url: str = DEFAULT_EXPLORER_URL
    api_key: str = ""
    max_pages: int = 50
    max_retries: int = 3
    retry_base_sec: float = 1.0
    rate_limit_cap_sec: float = 10.0
    request_timeout_sec: float = 10.0
    page_delay_sec: float = 0.2
    fetch_deadline_sec: float = 120.0
    token_volume_contract: str = ""


@dataclass(frozen=True)
class IdentitySettings:
    domain_api_url: str = DEFAULT_DOMAIN_API_URL
    neynar_api_url: str = DEFAULT_NEYNAR_API_URL
    neynar_api_key: str = ""
    featured_nft_contract: str = FEATURED_NFT_CONTRACT
    native_nft_contracts: tuple[str, ...] = NATIVE_NFT_CONTRACTS
    cache_ttl_sec: float = 300.0
    lookup_timeout_sec: float = 5.0
    bulk_batch_size: int = 5
    bulk_delay_sec: float = 0.2


@dataclass(frozen=True)
class ScoringWeights:
    tx: float = 0.5
    gas: float = 100.0
    deploy: float = 50.0
    days_active: float = 10.0
    age: float = 2.0


@dataclass(frozen=True)
class MultiplierFactors:
    og: float = 1.5
    builder: float = 1.2
    power_user: float = 1.3
    mega_domain: float = 1.15
    farcaster: float = 1.1
    featured_nft: float = 1.2
    native_nft: float = 1.1


@dataclass(frozen=True)
class ScoringSettings:
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    factors: MultiplierFactors = field(default_factory=MultiplierFactors)
    network_launch_timestamp: int = DEFAULT_NETWORK_LAUNCH_TIMESTAMP
    power_user_tx_per_day: float = 50.0
    active_gas_window_days: int = 30


@dataclass(frozen=True)
class StoreSettings:
    database_url: str = "sqlite:///megarank.db"
    stale_threshold_sec: int = 86400


@dataclass(frozen=True)
class ApiSettings:
    host: str = "0.0.0.0"
    port: int = 8000
    leaderboard_default_limit: int = 50
    leaderboard_max_limit: int = 100
    batch_delay_sec: float = 0.5


@dataclass(frozen=True)
class Settings:
    explorer: ExplorerSettings = field(default_factory=ExplorerSettings)
    identity: IdentitySettings = field(default_factory=IdentitySettings)
    scoring: ScoringSettings = field(default_factory=ScoringSettings)
    store: StoreSettings = field(default_factory=StoreSettings)
    api: ApiSettings = field(default_factory=ApiSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from os.environ (after loading .env)."""
        load_megarank_env()
        retry_base = env_float("EXPLORER_RETRY_BASE_SEC", 1.0)
        explorer = ExplorerSettings(
            base_url=env_str("EXPLORER_API_URL", DEFAULT_EXPLORER_URL).rstrip("/"),
            api_key=env_str("EXPLORER_API_KEY"),
            max_pages=env_int("EXPLORER_MAX_PAGES", 50),
            max_retries=env_int("EXPLORER_MAX_RETRIES", 3),
            retry_base_sec=retry_base,
            rate_limit_cap_sec=env_float("EXPLORER_RATE_LIMIT_CAP_SEC", 10 * retry_base),
            request_timeout_sec=env_float("EXPLORER_REQUEST_TIMEOUT_SEC", 10.0),
            page_delay_sec=env_float("EXPLORER_PAGE_DELAY_SEC", 0.2),
            fetch_deadline_sec=env_float("EXPLORER_FETCH_DEADLINE_SEC", 120.0),
            token_volume_contract=env_str("TOKEN_VOLUME_CONTRACT").lower(),
        )
        identity = IdentitySettings(
            domain_api_url=env_str("DOMAIN_API_URL", DEFAULT_DOMAIN_API_URL).rstrip("/"),
            neynar_api_url=env_str("NEYNAR_API_URL", DEFAULT_NEYNAR_API_URL).rstrip("/"),
            neynar_api_key=env_str("NEYNAR_API_KEY"),
            featured_nft_contract=env_str("FEATURED_NFT_CONTRACT", FEATURED_NFT_CONTRACT).lower(),
            native_nft_contracts=env_list("NATIVE_NFT_CONTRACTS", NATIVE_NFT_CONTRACTS),
            cache_ttl_sec=env_float("EXTERNAL_BONUS_TTL_SEC", 300.0),
            lookup_timeout_sec=env_float("EXTERNAL_LOOKUP_TIMEOUT_SEC", 5.0),
            bulk_batch_size=max(1, env_int("EXTERNAL_BULK_BATCH_SIZE", 5)),
            bulk_delay_sec=env_float("EXTERNAL_BULK_DELAY_SEC", 0.2),
        )
        scoring = ScoringSettings(
            weights=ScoringWeights(
                tx=env_float("SCORE_WEIGHT_TX", 0.5),
                gas=env_float("SCORE_WEIGHT_GAS", 100.0),
                deploy=env_float("SCORE_WEIGHT_DEPLOY", 50.0),
                days_active=env_float("SCORE_WEIGHT_DAYS", 10.0),
                age=env_float("SCORE_WEIGHT_AGE", 2.0),
            ),
            factors=MultiplierFactors(
                og=env_factor("SCORE_MULT_OG", 1.5),
                builder=env_factor("SCORE_MULT_BUILDER", 1.2),
                power_user=env_factor("SCORE_MULT_POWER_USER", 1.3),
                mega_domain=env_factor("SCORE_MULT_DOMAIN", 1.15),
                farcaster=env_factor("SCORE_MULT_FARCASTER", 1.1),
                featured_nft=env_factor("SCORE_MULT_FEATURED_NFT", 1.2),
                native_nft=env_factor("SCORE_MULT_NATIVE_NFT", 1.1),
            ),
            network_launch_timestamp=env_int(
                "NETWORK_LAUNCH_TIMESTAMP", DEFAULT_NETWORK_LAUNCH_TIMESTAMP
            ),
            power_user_tx_per_day=env_float("POWER_USER_TX_PER_DAY", 50.0),
            active_gas_window_days=env_int("ACTIVE_GAS_WINDOW_DAYS", 30),
        )
        store = StoreSettings(
            database_url=get_database_url(),
            stale_threshold_sec=env_int("STALE_THRESHOLD_SEC", 86400),
        )
        api = ApiSettings(
            host=env_str("API_HOST", "0.0.0.0"),
            port=env_int("API_PORT", 8000),
            batch_delay_sec=env_float("BATCH_DELAY_SEC", 0.5),
        )
        return cls(explorer=explorer, identity=identity, scoring=scoring, store=store, api=api)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings (built once from the environment)."""
    return Settings.from_env()
