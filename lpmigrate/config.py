"""Chain registry and engine configuration.

Configuration is explicit: an :class:`EngineConfig` is built once and
passed to the orchestrator and the web3/httpx collaborators. There is no
module-level client or mutable global.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from web3 import Web3

from .constants import (
    DEFAULT_FILL_DEADLINE_OFFSET,
    DEFAULT_QUOTE_CACHE_TTL,
    DEFAULT_SLIPPAGE_IN_BPS,
    DEFAULT_SWAP_ITERATIONS,
    MAX_SETTLER_FEE_BPS,
    NATIVE_ETH_ADDRESS,
    ZERO_ADDRESS,
    Protocol,
)
from .errors import ErrorKind, MigrationError

_cs = Web3.to_checksum_address


@dataclass(frozen=True)
class ChainConfig:
    """Static contract addresses for one chain.

    Attributes
    ----------
    chain_id : int
        EVM chain id.
    name : str
        Human-readable chain name.
    weth : str
        Wrapped native token; the bridgeable asset.
    v3_factory, v3_position_manager, quoter_v2 : str
        Uniswap v3 deployment.
    v4_position_manager, v4_state_view, v4_quoter : str or None
        Uniswap v4 deployment, where live.
    spoke_pool : str
        Across SpokePool.
    aerodrome_factory, aerodrome_position_manager, aerodrome_quoter : str or None
        Aerodrome Slipstream deployment, where live.
    migrators, settlers : Mapping[Protocol, str]
        Migration contracts per protocol.
    testnet : bool
        Whether this is a test network.
    """

    chain_id: int
    name: str
    weth: str
    v3_factory: str
    v3_position_manager: str
    quoter_v2: str
    spoke_pool: str
    v4_position_manager: Optional[str] = None
    v4_state_view: Optional[str] = None
    v4_quoter: Optional[str] = None
    aerodrome_factory: Optional[str] = None
    aerodrome_position_manager: Optional[str] = None
    aerodrome_quoter: Optional[str] = None
    migrators: Mapping[Protocol, str] = field(default_factory=dict)
    settlers: Mapping[Protocol, str] = field(default_factory=dict)
    testnet: bool = False

    def is_bridgeable(self, address: str) -> bool:
        """WETH or the native placeholder."""
        return address in (self.weth, NATIVE_ETH_ADDRESS)

    def migrator_for(self, protocol: Protocol) -> Optional[str]:
        address = self.migrators.get(protocol)
        if address in (None, ZERO_ADDRESS):
            return None
        return address

    def settler_for(self, protocol: Protocol) -> str:
        address = self.settlers.get(protocol)
        if address in (None, ZERO_ADDRESS):
            raise MigrationError(
                ErrorKind.MISSING_SETTLER,
                f"no {protocol.value} settler configured on chain {self.chain_id}",
                chain_id=self.chain_id,
                protocol=protocol.value,
            )
        return address


# ---------------------------------------------------------------------------
# Known chains
# ---------------------------------------------------------------------------

ETHEREUM = ChainConfig(
    chain_id=1,
    name="Ethereum",
    weth=_cs("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"),
    v3_factory=_cs("0x1F98431c8aD98523631AE4a59f267346ea31F984"),
    v3_position_manager=_cs("0xC36442b4a4522E871399CD717aBDD847Ab11FE88"),
    quoter_v2=_cs("0x61fFE014bA17989E743c5F6cB21bF9697530B21e"),
    spoke_pool=_cs("0x5c7BCd6E7De5423a257D81B442095A1a6ced35C5"),
    v4_position_manager=_cs("0xbd216513d74c8cf14cf4747e6aaa6420ff64ee9e"),
    v4_state_view=_cs("0x7ffe42c4a5deea5b0fec41c94c136cf115597227"),
    v4_quoter=_cs("0x52f0e24d1c21c8a0cb1e5a5dd6198556bd9e1203"),
    migrators={
        Protocol.UNISWAP_V3: _cs("0x25821d96b689180790a8b3f3b3e1b715c0a37c09"),
    },
    settlers={
        Protocol.UNISWAP_V3: _cs("0xa0d4c0ad177caa71edad6750f28911b12a15360f"),
        Protocol.UNISWAP_V4: _cs("0x7d75cf20d9d623af4ef6839ace558a7811d6e613"),
    },
)

OPTIMISM = ChainConfig(
    chain_id=10,
    name="Optimism",
    weth=_cs("0x4200000000000000000000000000000000000006"),
    v3_factory=_cs("0x1F98431c8aD98523631AE4a59f267346ea31F984"),
    v3_position_manager=_cs("0xC36442b4a4522E871399CD717aBDD847Ab11FE88"),
    quoter_v2=_cs("0x61fFE014bA17989E743c5F6cB21bF9697530B21e"),
    spoke_pool=_cs("0xF383FD9A49282C9e1C99eB07a819e27E0d7B956c"),
    v4_position_manager=_cs("0x3c3ea4b57a46241e54610e5f022e5c45859a1017"),
    v4_state_view=_cs("0xc18a3169788f4f75a170290584eca6395c75ecdb"),
    v4_quoter=_cs("0x1f3131a13296fb91c90870043742c3cdbff1a8d7"),
    migrators={
        Protocol.UNISWAP_V3: _cs("0xb1fe7ddb2adf99fcd766f1f39050461c318fbff2"),
        Protocol.UNISWAP_V4: _cs("0xbaa2d79b8d621ac7dbf09318993d3e537692cdc3"),
    },
    settlers={
        Protocol.UNISWAP_V3: _cs("0x3312a61e324a8c3360d67c767aa1b0381a94084a"),
        Protocol.UNISWAP_V4: _cs("0xe1d94593f86e515c93b1fda5728833796f934d70"),
    },
)

UNICHAIN = ChainConfig(
    chain_id=130,
    name="Unichain",
    weth=_cs("0x4200000000000000000000000000000000000006"),
    v3_factory=_cs("0x1f98400000000000000000000000000000000003"),
    v3_position_manager=_cs("0x943e6e07a7e8e791dafc44083e54041d743c46e9"),
    quoter_v2=_cs("0x385a5cf5f83e99f7bb2852b6a19c3538b9fa7658"),
    spoke_pool=_cs("0x09aea4b2242abC8bb4BB78D537A67a245A7bEC64"),
    v4_position_manager=_cs("0x4529a01c7a0410167c5740c487a8de60232617bf"),
    v4_state_view=_cs("0x86e8631a016f9068c3f085faf484ee3f5fdee8f2"),
    v4_quoter=_cs("0x333e3c607b141b18ff6de9f258db6e77fe7491e0"),
    migrators={
        Protocol.UNISWAP_V3: _cs("0x570f172ed6eb3748db046c244710bf473cb8a912"),
        Protocol.UNISWAP_V4: _cs("0x33edacc45919517ce2a857125d95452c0f9f7cb5"),
    },
    settlers={
        Protocol.UNISWAP_V3: _cs("0xa20b26211322de80951b5fd0a6dc264179071b59"),
        Protocol.UNISWAP_V4: _cs("0x4817139b45450482ad09a183fd540126f2e124cc"),
    },
)

BASE = ChainConfig(
    chain_id=8453,
    name="Base",
    weth=_cs("0x4200000000000000000000000000000000000006"),
    v3_factory=_cs("0x33128a8fC17869897dcE68Ed026d694621f6FDfD"),
    v3_position_manager=_cs("0x03a520b32C04BF3bEEf7BEb72E919cf822Ed34f1"),
    quoter_v2=_cs("0x3d4e44Eb1374240CE5F1B871ab261CD16335B76a"),
    spoke_pool=_cs("0x09aea4b2242abC8bb4BB78D537A67a245A7bEC64"),
    v4_position_manager=_cs("0x7c5f5a4bbd8fd63184577525326123b519429bdc"),
    v4_state_view=_cs("0xa3c0c9b65bad0b08107aa264b0f3db444b867a71"),
    v4_quoter=_cs("0x0d5e0f971ed27fbff6c2837bf31316121532048d"),
    aerodrome_factory=_cs("0x5e7BB104d84c7CB9B682AaC2F3d509f5F406809A"),
    aerodrome_position_manager=_cs("0x827922686190790b37229fd06084350E74485b72"),
    aerodrome_quoter=_cs("0x254cF9E1E6e233aa1AC962CB9B05b2cfeAaE15b0"),
    migrators={
        Protocol.UNISWAP_V3: _cs("0x31125eb26b95cf115bb5c76a417d67d43049608b"),
        Protocol.UNISWAP_V4: _cs("0xe327bf6f413340f083b5089eba933301b8d9b1a4"),
    },
    settlers={
        Protocol.UNISWAP_V3: _cs("0x2e298022e19e9070ca21c309bdf1763726d88e43"),
        Protocol.UNISWAP_V4: _cs("0x12042053769bc618447ebe7030926678b24318fa"),
    },
)

ARBITRUM = ChainConfig(
    chain_id=42161,
    name="Arbitrum One",
    weth=_cs("0x82aF49447D8a07e3bd95BD0d56f35241523fBab1"),
    v3_factory=_cs("0x1F98431c8aD98523631AE4a59f267346ea31F984"),
    v3_position_manager=_cs("0xC36442b4a4522E871399CD717aBDD847Ab11FE88"),
    quoter_v2=_cs("0x61fFE014bA17989E743c5F6cB21bF9697530B21e"),
    spoke_pool=_cs("0xe35e9842fceaCA96570B734083f4a58e8F7C5f2A"),
    v4_position_manager=_cs("0xd88f38f930b7952f2db2432cb002e7abbf3dd869"),
    v4_state_view=_cs("0x76fd297e2d437cd7f76d50f01afe6160f86e9990"),
    v4_quoter=_cs("0x3972c00f7ed4885e145823eb7c655375d275a1c5"),
    migrators={
        Protocol.UNISWAP_V3: _cs("0x84e13adc0843c83469897346afe3dd610a20c367"),
        Protocol.UNISWAP_V4: _cs("0xc24cb63c456e2cbca850c2bb8b14a8d956ecdd1c"),
    },
    settlers={
        Protocol.UNISWAP_V3: _cs("0xfe6277fa46cb618a9f60b93a4b9491098e754776"),
        Protocol.UNISWAP_V4: _cs("0x4f0b98832f1ef09ba0223ab9df2206afa8cc80f9"),
    },
)

SEPOLIA = ChainConfig(
    chain_id=11155111,
    name="Sepolia",
    weth=_cs("0xfFf9976782d46CC05630D1f6eBAb18b2324d6B14"),
    v3_factory=_cs("0x0227628f3F023bb0B980b67D528571c95c6DaC1c"),
    v3_position_manager=_cs("0x1238536071E1c677A632429e3655c799b22cDA52"),
    quoter_v2=_cs("0xEd1f6473345F45b75F8179591dd5bA1888cf2FB3"),
    spoke_pool=_cs("0x5ef6C01E11889d86803e0B23e3cB3F9E9d97B662"),
    v4_position_manager=_cs("0x429ba70129df741B2Ca2a85BC3A2a3328e5c09b4"),
    v4_state_view=_cs("0xe1dd9c3fa50edb962e442f60dfbc432e24537e4c"),
    v4_quoter=_cs("0x61b3f2011a92d183c7dbadbda940a7555ccf9227"),
    testnet=True,
)

CHAIN_CONFIGS: Mapping[int, ChainConfig] = {
    c.chain_id: c for c in (ETHEREUM, OPTIMISM, UNICHAIN, BASE, ARBITRUM, SEPOLIA)
}


def get_chain_config(
    chain_id: int, chains: Mapping[int, ChainConfig] = CHAIN_CONFIGS
) -> ChainConfig:
    try:
        return chains[chain_id]
    except KeyError:
        raise MigrationError(
            ErrorKind.UNSUPPORTED_CHAIN,
            f"chain {chain_id} is not configured",
            chain_id=chain_id,
        ) from None


# ---------------------------------------------------------------------------
# Engine configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EngineConfig:
    """Tunables shared by Start and Settle.

    Attributes
    ----------
    chains : Mapping[int, ChainConfig]
        Chains the engine may read from or settle on.
    default_slippage_bps : int
        Slippage tolerance when a request does not carry one.
    fill_deadline_offset : int
        Seconds a relayer has to fill a deposit.
    swap_iterations : int
        Refinement rounds of the swap-enabled planner.
    quote_cache_ttl : float
        Lifetime in seconds of coalesced quote requests.
    max_settler_fee_bps : int
        Ceiling on protocol + sender fee shares.
    across_api_url : str
        Base URL of the Across quote API.
    integrator_id : str
        2-byte hex tag appended to Across deposits.
    """

    chains: Mapping[int, ChainConfig] = field(default_factory=lambda: dict(CHAIN_CONFIGS))
    default_slippage_bps: int = DEFAULT_SLIPPAGE_IN_BPS
    fill_deadline_offset: int = DEFAULT_FILL_DEADLINE_OFFSET
    swap_iterations: int = DEFAULT_SWAP_ITERATIONS
    quote_cache_ttl: float = DEFAULT_QUOTE_CACHE_TTL
    max_settler_fee_bps: int = MAX_SETTLER_FEE_BPS
    across_api_url: str = "https://app.across.to/api"
    integrator_id: str = "0xdead"

    def chain(self, chain_id: int) -> ChainConfig:
        return get_chain_config(chain_id, self.chains)
