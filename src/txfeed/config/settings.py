from decimal import Decimal
import os
from dotenv import load_dotenv
load_dotenv()
# ---- Solana RPC ----
SOLANA_RPC_URL = os.environ.get("SOLANA_RPC_URL", "https://api.devnet.solana.com")
SOLANA_COMMITMENT = "confirmed"
SOLANA_MAX_TX_VERSION = 0

SOLANA_REQUESTS_PER_SEC = float(os.environ.get("SOLANA_REQUESTS_PER_SEC", "10"))
SOLANA_TIMEOUT_SEC = 30
SOLANA_MAX_RETRIES = 4
SOLANA_MAX_CONCURRENCY = 20     # in-flight getTransaction calls per adapter

# ---- History paging ----
HISTORY_PAGE_SIZE = 20
HISTORY_LATEST_PAGE_SIZE = 1

# ---- Chain constants ----
LAMPORTS_PER_SOL = 1_000_000_000

# 0.000005 SOL; rent-exemption adjustments and fees stay below this
DUST_THRESHOLD_LAMPORTS = 5000

EXTERNAL_ADDRESS = "external"

SYSTEM_PROGRAM = "system"
TOKEN_PROGRAM = "spl-token"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

# Circle devnet USDC
USDC_MINT = os.environ.get("USDC_MINT", "4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU")

# ----- Pricing ------
PRICE_API_URL = os.environ.get("PRICE_API_URL", "http://localhost:8000/api")
PRICE_REQUESTS_PER_SEC = 1.0
PRICE_TIMEOUT_SEC = 15
PRICE_MAX_RETRIES = 3
PRICE_CURRENCY = "usd"

# Shown until the first successful price refresh
DEFAULT_PRICES = {
    "solana": Decimal("170"),
    "usd-coin": Decimal("1"),
}

# ----- Logging -----
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("LOG_FORMAT", "console").strip().lower()
