"""HTLC spec configuration constants.

Keep this file aligned with the EVM escrow contracts (`EscrowFactory`,
`EscrowDst`, `TimelocksLib`) and the TON order contracts (`EscrowFactory`,
`UserEscrow`).
"""

# Word sizes
HASH_SIZE = 32
SECRET_SIZE = 32
WORD_SIZE = 32
EVM_ADDRESS_SIZE = 20
TON_ADDRESS_SIZE = 32

U32_MAX = (1 << 32) - 1
U128_MAX = (1 << 128) - 1
U256_MAX = (1 << 256) - 1
EVM_ADDRESS_MAX = (1 << 160) - 1

# Units
WEI_PER_ETHER = 10**18
NANO_PER_TON = 10**9

# Asset sentinel: token address 0 is the chain's native currency
NATIVE_ASSET = 0

# Escrow lifecycle
RESCUE_DELAY = 7 * 24 * 60 * 60  # 7 days
DEFAULT_CREATION_FEE = WEI_PER_ETHER // 100  # 0.01 ETH

# Timelocks word layout (bit offsets into one uint256)
TIMELOCK_FIELD_BITS = 32
DST_WITHDRAWAL_OFFSET = 0
DST_PUBLIC_WITHDRAWAL_OFFSET = 32
DST_CANCELLATION_OFFSET = 64
DEPLOYED_AT_OFFSET = 224
# Bits 96..223 are reserved and must be zero.
TIMELOCK_RESERVED_MASK = ((1 << DEPLOYED_AT_OFFSET) - 1) & ~((1 << 96) - 1)

# TON create_order message field widths (bits)
ORDER_ID_BITS = 32
QUERY_ID_BITS = 64
TO_NETWORK_BITS = 8
TO_TOKEN_BITS = 256
TO_ADDRESS_BITS = 256
TO_AMOUNT_BITS = 128
HASH_KEY_BITS = 256

# TON boolean convention for get-methods
TON_TRUE = -1
TON_FALSE = 0

# Destination networks addressed by a source order
NETWORK_TON = 0
NETWORK_EVM = 1

# Chain / network
CHAIN_ID_EVM_MAINNET = 1
CHAIN_ID_EVM_SEPOLIA = 11155111
CHAIN_ID_EVM_LOCAL = 31337
CHAIN_ID_TON_MAINNET = -239
CHAIN_ID_TON_TESTNET = -3
