"""Configuration management for the vote API service."""
from typing import Optional, Dict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    SERVICE_NAME: str = "vote-api"
    API_VERSION: str = "v1"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Ledger configuration
    LEDGER_BACKEND: str = "file"  # memory, file or redis
    LEDGER_FILE: str = ".data/votes.json"

    # Redis configuration
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # Rate limiting
    RATE_LIMIT: str = "100/second"

    # CORS settings
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]

    # Chain configuration
    RPC_URL: str = "https://worldchain-sepolia.g.alchemy.com/public"
    CHAIN_ID: int = 4801
    VOTING_SLOTS: int = 20
    RELAYER_PRIVATE_KEY: Optional[str] = None

    # Contract addresses
    VOTING_ADDRESS: Optional[str] = None
    AUCTION_ADDRESS: Optional[str] = None
    NFT_MINTER_ADDRESS: Optional[str] = None
    TREASURY_ADDRESS: Optional[str] = None
    GOVERNOR_ADDRESS: Optional[str] = None
    CANDIDATE_ADDRESS: Optional[str] = None
    WORLD_NFT_ADDRESS: Optional[str] = None

    # Directory holding the contract projects' deployment records
    DEPLOYMENTS_DIR: str = "../contracts"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def redis_url(self) -> str:
        """Generate Redis connection URL."""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def contract_addresses(self) -> Dict[str, Optional[str]]:
        """Configured contract addresses keyed the way deployment records name them."""
        return {
            "voting": self.VOTING_ADDRESS,
            "auction": self.AUCTION_ADDRESS,
            "governor": self.GOVERNOR_ADDRESS,
            "candidate": self.CANDIDATE_ADDRESS,
            "worldNft": self.WORLD_NFT_ADDRESS,
            "treasury": self.TREASURY_ADDRESS,
        }


settings = Settings()
