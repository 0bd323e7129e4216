"""Protocol enums, engine defaults, minimal ABIs, and storage slots."""

from enum import Enum, IntEnum


class Protocol(str, Enum):
    UNISWAP_V3 = "UniswapV3"
    UNISWAP_V4 = "UniswapV4"
    AERODROME = "Aerodrome"


class MigrationMethod(str, Enum):
    SINGLE_TOKEN = "SingleToken"
    DUAL_TOKEN = "DualToken"


class BridgeType(str, Enum):
    ACROSS = "Across"
    DIRECT = "Direct"


class MigrationMode(IntEnum):
    """On-chain encoding of :class:`MigrationMethod`."""

    SINGLE_TOKEN = 1
    DUAL_TOKEN = 2


# --- Addresses ---
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
NATIVE_ETH_ADDRESS = ZERO_ADDRESS

# --- Engine defaults ---
DEFAULT_SLIPPAGE_IN_BPS = 100  # 1%
DEFAULT_FILL_DEADLINE_OFFSET = 3000  # seconds
DEFAULT_SWAP_ITERATIONS = 5
DEFAULT_QUOTE_CACHE_TTL = 0.3  # seconds
MAX_SETTLER_FEE_BPS = 100  # protocol + sender share, 1%

# The second dual-token route also pays for the mint, so its relayer gas
# estimate is scaled up and its exclusivity window extended.
DUAL_ROUTE_EXTRA_GAS_MULTIPLIER = 4
DUAL_ROUTE_EXTRA_EXCLUSIVITY = 10  # seconds

# Interim mint params used while quoting the bridge, before the real plan.
INTERIM_AMOUNT_MIN = 1000

BPS_DENOMINATOR = 10_000
MILLI_BPS_DENOMINATOR = 10_000_000

# --- Storage slots ---
SETTLEMENT_CACHE_SLOT = 3

# Uniswap v3 fee tier -> tick spacing
V3_FEE_TICK_SPACINGS = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}

# --- Tick bounds ---
MIN_TICK = -887272
MAX_TICK = 887272

# Aerodrome Slipstream tick spacing -> fee (hundredths of a bip)
AERODROME_TICK_SPACING_FEES = {
    1: 100,
    50: 500,
    100: 500,
    200: 3000,
    2000: 10000,
}

# --- ABIs (minimal) ---
V3_FACTORY_ABI = [
    {
        "name": "getPool",
        "type": "function",
        "inputs": [
            {"name": "tokenA", "type": "address"},
            {"name": "tokenB", "type": "address"},
            {"name": "fee", "type": "uint24"},
        ],
        "outputs": [{"name": "pool", "type": "address"}],
        "stateMutability": "view",
    }
]

AERODROME_FACTORY_ABI = [
    {
        "name": "getPool",
        "type": "function",
        "inputs": [
            {"name": "tokenA", "type": "address"},
            {"name": "tokenB", "type": "address"},
            {"name": "tickSpacing", "type": "int24"},
        ],
        "outputs": [{"name": "pool", "type": "address"}],
        "stateMutability": "view",
    }
]

POOL_ABI = [
    {
        "name": "slot0",
        "type": "function",
        "inputs": [],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "feeProtocol", "type": "uint8"},
            {"name": "unlocked", "type": "bool"},
        ],
        "stateMutability": "view",
    },
    {
        "name": "liquidity",
        "type": "function",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint128"}],
        "stateMutability": "view",
    },
]

# Aerodrome Slipstream slot0 drops feeProtocol.
AERODROME_POOL_ABI = [
    {
        "name": "slot0",
        "type": "function",
        "inputs": [],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "unlocked", "type": "bool"},
        ],
        "stateMutability": "view",
    },
    POOL_ABI[1],
]

V4_STATE_VIEW_ABI = [
    {
        "name": "getFeeGrowthInside",
        "type": "function",
        "inputs": [
            {"name": "poolId", "type": "bytes32"},
            {"name": "tickLower", "type": "int24"},
            {"name": "tickUpper", "type": "int24"},
        ],
        "outputs": [
            {"name": "feeGrowthInside0X128", "type": "uint256"},
            {"name": "feeGrowthInside1X128", "type": "uint256"},
        ],
        "stateMutability": "view",
    },
    {
        "name": "getPositionInfo",
        "type": "function",
        "inputs": [
            {"name": "poolId", "type": "bytes32"},
            {"name": "positionId", "type": "bytes32"},
        ],
        "outputs": [
            {"name": "liquidity", "type": "uint128"},
            {"name": "feeGrowthInside0LastX128", "type": "uint256"},
            {"name": "feeGrowthInside1LastX128", "type": "uint256"},
        ],
        "stateMutability": "view",
    },
    {
        "name": "getSlot0",
        "type": "function",
        "inputs": [{"name": "poolId", "type": "bytes32"}],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "protocolFee", "type": "uint24"},
            {"name": "lpFee", "type": "uint24"},
        ],
        "stateMutability": "view",
    },
    {
        "name": "getLiquidity",
        "type": "function",
        "inputs": [{"name": "poolId", "type": "bytes32"}],
        "outputs": [{"name": "liquidity", "type": "uint128"}],
        "stateMutability": "view",
    },
]

QUOTER_V2_ABI = [
    {
        "name": "quoteExactInputSingle",
        "type": "function",
        "inputs": [
            {
                "name": "params",
                "type": "tuple",
                "components": [
                    {"name": "tokenIn", "type": "address"},
                    {"name": "tokenOut", "type": "address"},
                    {"name": "amountIn", "type": "uint256"},
                    {"name": "fee", "type": "uint24"},
                    {"name": "sqrtPriceLimitX96", "type": "uint160"},
                ],
            }
        ],
        "outputs": [
            {"name": "amountOut", "type": "uint256"},
            {"name": "sqrtPriceX96After", "type": "uint160"},
            {"name": "initializedTicksCrossed", "type": "uint32"},
            {"name": "gasEstimate", "type": "uint256"},
        ],
        "stateMutability": "nonpayable",
    }
]

PROTOCOL_FEES_ABI = [
    {
        "name": "protocolShareBps",
        "type": "function",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint16"}],
        "stateMutability": "view",
    },
    {
        "name": "protocolShareOfSenderFeePct",
        "type": "function",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
    },
]

SETTLER_ABI = [
    {
        "name": "withdraw",
        "type": "function",
        "inputs": [{"name": "migrationId", "type": "bytes32"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    }
]

POSITION_MANAGER_ABI = [
    {
        "name": "safeTransferFrom",
        "type": "function",
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "tokenId", "type": "uint256"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    }
]

AERODROME_QUOTER_ABI = [
    {
        "name": "quoteExactInputSingle",
        "type": "function",
        "inputs": [
            {
                "name": "params",
                "type": "tuple",
                "components": [
                    {"name": "tokenIn", "type": "address"},
                    {"name": "tokenOut", "type": "address"},
                    {"name": "amountIn", "type": "uint256"},
                    {"name": "tickSpacing", "type": "int24"},
                    {"name": "sqrtPriceLimitX96", "type": "uint160"},
                ],
            }
        ],
        "outputs": QUOTER_V2_ABI[0]["outputs"],
        "stateMutability": "nonpayable",
    }
]

V4_QUOTER_ABI = [
    {
        "name": "quoteExactInputSingle",
        "type": "function",
        "inputs": [
            {
                "name": "params",
                "type": "tuple",
                "components": [
                    {
                        "name": "poolKey",
                        "type": "tuple",
                        "components": [
                            {"name": "currency0", "type": "address"},
                            {"name": "currency1", "type": "address"},
                            {"name": "fee", "type": "uint24"},
                            {"name": "tickSpacing", "type": "int24"},
                            {"name": "hooks", "type": "address"},
                        ],
                    },
                    {"name": "zeroForOne", "type": "bool"},
                    {"name": "exactAmount", "type": "uint128"},
                    {"name": "hookData", "type": "bytes"},
                ],
            }
        ],
        "outputs": [
            {"name": "amountOut", "type": "uint256"},
            {"name": "gasEstimate", "type": "uint256"},
        ],
        "stateMutability": "nonpayable",
    }
]

NFT_POSITION_MANAGER_ABI = [
    {
        "name": "positions",
        "type": "function",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [
            {"name": "nonce", "type": "uint96"},
            {"name": "operator", "type": "address"},
            {"name": "token0", "type": "address"},
            {"name": "token1", "type": "address"},
            {"name": "fee", "type": "uint24"},
            {"name": "tickLower", "type": "int24"},
            {"name": "tickUpper", "type": "int24"},
            {"name": "liquidity", "type": "uint128"},
            {"name": "feeGrowthInside0LastX128", "type": "uint256"},
            {"name": "feeGrowthInside1LastX128", "type": "uint256"},
            {"name": "tokensOwed0", "type": "uint128"},
            {"name": "tokensOwed1", "type": "uint128"},
        ],
        "stateMutability": "view",
    },
    {
        "name": "ownerOf",
        "type": "function",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "owner", "type": "address"}],
        "stateMutability": "view",
    },
    {
        "name": "collect",
        "type": "function",
        "inputs": [
            {
                "name": "params",
                "type": "tuple",
                "components": [
                    {"name": "tokenId", "type": "uint256"},
                    {"name": "recipient", "type": "address"},
                    {"name": "amount0Max", "type": "uint128"},
                    {"name": "amount1Max", "type": "uint128"},
                ],
            }
        ],
        "outputs": [
            {"name": "amount0", "type": "uint256"},
            {"name": "amount1", "type": "uint256"},
        ],
        "stateMutability": "payable",
    },
] + POSITION_MANAGER_ABI

# Slipstream positions() carries tickSpacing where v3 carries fee.
AERODROME_POSITION_MANAGER_ABI = [
    {
        **NFT_POSITION_MANAGER_ABI[0],
        "outputs": [
            dict(output, name="tickSpacing", type="int24") if output["name"] == "fee" else output
            for output in NFT_POSITION_MANAGER_ABI[0]["outputs"]
        ],
    },
] + NFT_POSITION_MANAGER_ABI[1:]

V4_POSITION_MANAGER_ABI = [
    {
        "name": "getPoolAndPositionInfo",
        "type": "function",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [
            {
                "name": "poolKey",
                "type": "tuple",
                "components": V4_QUOTER_ABI[0]["inputs"][0]["components"][0]["components"],
            },
            {"name": "info", "type": "uint256"},
        ],
        "stateMutability": "view",
    },
    {
        "name": "getPositionLiquidity",
        "type": "function",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "liquidity", "type": "uint128"}],
        "stateMutability": "view",
    },
    NFT_POSITION_MANAGER_ABI[1],
] + POSITION_MANAGER_ABI
