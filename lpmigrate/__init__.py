"""Planning and settlement engine for cross-chain concentrated-liquidity migrations."""

from .bridge import AcrossQuoter
from .cache import QuoteCache
from .chain import (
    Web3ChainClient,
    get_settlement_cache_entry,
    migration_execution_params,
    withdrawal_execution_params,
)
from .config import CHAIN_CONFIGS, ChainConfig, EngineConfig, get_chain_config
from .constants import BridgeType, MigrationMethod, MigrationMode, Protocol
from .errors import ErrorCategory, ErrorKind, MigrationError
from .migration_id import derive_migration_id, split_migration_id
from .orchestrator import MigrationOrchestrator
from .types import (
    AerodromeDestination,
    MigrationOption,
    MigrationPlan,
    MigrationsRequest,
    MigrationsResult,
    Position,
    Route,
    SettleRequest,
    SettleResult,
    SourcePosition,
    StartRequest,
    StartResult,
    UnavailableMigration,
    V3Destination,
    V4Destination,
)

__all__ = [
    "AcrossQuoter",
    "AerodromeDestination",
    "BridgeType",
    "CHAIN_CONFIGS",
    "ChainConfig",
    "EngineConfig",
    "ErrorCategory",
    "ErrorKind",
    "MigrationError",
    "MigrationMethod",
    "MigrationMode",
    "MigrationOption",
    "MigrationOrchestrator",
    "MigrationPlan",
    "MigrationsRequest",
    "MigrationsResult",
    "Position",
    "Protocol",
    "QuoteCache",
    "Route",
    "SettleRequest",
    "SettleResult",
    "SourcePosition",
    "StartRequest",
    "StartResult",
    "UnavailableMigration",
    "V3Destination",
    "V4Destination",
    "Web3ChainClient",
    "derive_migration_id",
    "get_chain_config",
    "get_settlement_cache_entry",
    "migration_execution_params",
    "split_migration_id",
    "withdrawal_execution_params",
]
