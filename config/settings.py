"""Configuration management for the split ticket buyer."""
from typing import Optional
import os
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Wallet host value that requests discovery of the local running wallet.
DISCOVER_WALLET_HOST = "127.0.0.1:0"

class LoggingConfig(BaseModel):
    """Logging configuration settings."""
    level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_file: Optional[str] = Field(
        default="buyer.log",
        description="Log file name under logs/, or None for console only"
    )

class TimingConfig(BaseModel):
    """Timeouts and intervals, in seconds."""
    setup_timeout: float = Field(
        default=60.0,
        description="Maximum time for precondition checks and connection setup"
    )
    max_wait_time: float = Field(
        default=0.0,
        description="Maximum time to wait for a match; 0 waits indefinitely"
    )
    max_time: float = Field(
        default=120.0,
        description="Maximum time for the purchase once matched"
    )
    sync_check_interval: float = Field(
        default=300.0,
        description="Interval between matcher/wallet chain tip comparisons"
    )
    sync_jitter_min: float = Field(
        default=10.0,
        description="Lower bound of the recheck delay after a tip mismatch"
    )
    sync_jitter_max: float = Field(
        default=20.0,
        description="Upper bound of the recheck delay after a tip mismatch"
    )
    publish_poll_interval: float = Field(
        default=0.25,
        description="Cadence of the published transaction checks"
    )

class BuyerConfig(BaseModel):
    """Main buyer configuration."""
    max_amount: float = Field(
        description="Maximum contribution to the ticket, in coins"
    )
    vote_address: str = Field(
        description="Address of the voting wallet"
    )
    pool_address: str = Field(
        description="Address receiving the pool fee"
    )
    pool_fee_rate: float = Field(
        default=0.0,
        description="Pool fee rate, as a percentage"
    )
    session_name: str = Field(
        default="",
        description="Name of the matcher session to join"
    )
    pass_phrase: Optional[str] = Field(
        default=None,
        description="Wallet private passphrase"
    )
    chain_network: str = Field(
        default="mainnet",
        description="Network the wallet, node and matcher must run on"
    )
    wallet_host: str = Field(
        default=DISCOVER_WALLET_HOST,
        description="Wallet RPC host; 127.0.0.1:0 discovers the running wallet"
    )
    wallet_cert_file: Optional[str] = Field(
        default=None,
        description="Wallet RPC certificate"
    )
    matcher_host: str = Field(
        default="localhost:8475",
        description="Matching service host"
    )
    matcher_cert_file: Optional[str] = Field(
        default=None,
        description="Matching service certificate"
    )
    dcrd_host: str = Field(
        default="localhost:9109",
        description="Full node RPC host"
    )
    dcrd_user: Optional[str] = Field(
        default=None,
        description="Full node RPC user"
    )
    dcrd_pass: Optional[str] = Field(
        default=None,
        description="Full node RPC password"
    )
    dcrd_cert_file: Optional[str] = Field(
        default=None,
        description="Full node RPC certificate"
    )
    utxos_from_dcrdata: bool = Field(
        default=True,
        description="Fetch split utxos from the block explorer instead of a full node"
    )
    dcrdata_url: str = Field(
        default="https://explorer.dcrdata.org",
        description="Block explorer base URL"
    )
    data_dir: str = Field(
        default="./data",
        description="Directory where finished sessions are saved"
    )
    skip_report_errors_to_svc: bool = Field(
        default=False,
        description="Do not send error reports to the matching service"
    )
    skip_wait_published_txs: bool = Field(
        default=False,
        description="Finish as soon as the split transaction is funded"
    )
    timing: TimingConfig = Field(
        default_factory=TimingConfig,
        description="Timeout and interval settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings"
    )

def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"

def load_config() -> BuyerConfig:
    """Load configuration from environment variables."""
    # Load environment variables from .env file
    load_dotenv()

    return BuyerConfig(
        max_amount=float(os.getenv("MAX_AMOUNT", "0")),
        vote_address=os.getenv("VOTE_ADDRESS", ""),
        pool_address=os.getenv("POOL_ADDRESS", ""),
        pool_fee_rate=float(os.getenv("POOL_FEE_RATE", "0")),
        session_name=os.getenv("SESSION_NAME", ""),
        pass_phrase=os.getenv("PASS_PHRASE"),
        chain_network=os.getenv("CHAIN_NETWORK", "mainnet"),
        wallet_host=os.getenv("WALLET_HOST", DISCOVER_WALLET_HOST),
        wallet_cert_file=os.getenv("WALLET_CERT_FILE"),
        matcher_host=os.getenv("MATCHER_HOST", "localhost:8475"),
        matcher_cert_file=os.getenv("MATCHER_CERT_FILE"),
        dcrd_host=os.getenv("DCRD_HOST", "localhost:9109"),
        dcrd_user=os.getenv("DCRD_USER"),
        dcrd_pass=os.getenv("DCRD_PASS"),
        dcrd_cert_file=os.getenv("DCRD_CERT_FILE"),
        utxos_from_dcrdata=_env_flag("UTXOS_FROM_DCRDATA", "true"),
        dcrdata_url=os.getenv("DCRDATA_URL", "https://explorer.dcrdata.org"),
        data_dir=os.getenv("DATA_DIR", "./data"),
        skip_report_errors_to_svc=_env_flag("SKIP_REPORT_ERRORS_TO_SVC"),
        skip_wait_published_txs=_env_flag("SKIP_WAIT_PUBLISHED_TXS"),
        timing=TimingConfig(
            setup_timeout=float(os.getenv("SETUP_TIMEOUT", "60")),
            max_wait_time=float(os.getenv("MAX_WAIT_TIME", "0")),
            max_time=float(os.getenv("MAX_TIME", "120")),
        ),
        logging=LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "buyer.log") or None
        )
    )
