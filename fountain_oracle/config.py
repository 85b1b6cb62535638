"""Application configuration and environment settings"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fountain_oracle.errors import InvalidConfiguration


class OracleParameters(BaseModel):
    """Constants used by the daily entitlement formulas"""
    model_config = ConfigDict(frozen=True)

    base_daily_amount: int = Field(50, ge=0, description="Base daily entitlement per holder")
    growth_threshold: float = Field(0.02, ge=0, description="Growth rate that earns a score increment")
    growth_increment: float = Field(0.1, gt=0, description="Cumulative score increment on qualifying growth")
    enable_decay: bool = Field(False, description="Decay the cumulative score on quiet days")
    decay_amount: float = Field(0.05, ge=0, description="Cumulative score decay per quiet day")
    max_growth_multiplier: float = Field(1.5, ge=1, description="Cap on the growth multiplier")
    booster_multiplier: int = Field(50, ge=0, description="Donor booster slope")
    max_donor_booster: int = Field(25, ge=0, description="Cap on the donor booster")
    max_daily_entitlement: int = Field(112, ge=0, description="Absolute cap on the final entitlement")
    enable_growth_multiplier: bool = True
    enable_donor_booster: bool = True

    @model_validator(mode='after')
    def check_entitlement_cap(self) -> 'OracleParameters':
        if self.max_daily_entitlement < self.base_daily_amount:
            raise ValueError("max_daily_entitlement must not be below base_daily_amount")
        return self


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Storage
    DATABASE_URL: str = Field("sqlite:///fountain-oracle.db", description="SQLAlchemy database URL")

    # Mirror node
    MIRROR_NODE_URL: str = Field("https://testnet.mirrornode.hedera.com", description="Mirror node base URL")
    REQUEST_TIMEOUT: float = Field(30, gt=0, description="HTTP request timeout in seconds")
    REQUEST_RETRIES: int = Field(3, ge=1, description="Attempts per HTTP request")

    # Protocol accounts and tokens
    MEMBERSHIP_TOKEN_ID: str = Field("0.0.6591211", description="Membership (DRIP) token ID")
    REWARD_TOKEN_ID: str = Field("0.0.6590974", description="Reward (WISH) token ID")
    DONOR_BADGE_TOKEN_ID: str = Field("0.0.6590982", description="Donor badge (DROP) token ID")
    TREASURY_ACCOUNT_ID: str = Field("0.0.6552092", description="Treasury account, excluded from counts")

    # Audit publication
    AUDIT_TOPIC_ID: str = Field("0.0.6591043", description="Consensus topic for snapshot records")
    AUDIT_RELAY_URL: Optional[str] = Field(None, description="Relay that submits messages to the topic")
    AUDIT_RELAY_API_KEY: Optional[str] = Field(None, description="Relay API key")
    AUDIT_LOG_PATH: Optional[str] = Field(None, description="Append-only JSON lines audit log")
    PROTOCOL_NAME: str = "Fountain Protocol"
    SCHEMA_VERSION: str = "1.0"

    # Oracle parameters
    BASE_DAILY_AMOUNT: int = Field(50, ge=0)
    GROWTH_THRESHOLD: float = Field(0.02, ge=0)
    GROWTH_INCREMENT: float = Field(0.1, gt=0)
    ENABLE_DECAY: bool = False
    DECAY_AMOUNT: float = Field(0.05, ge=0)
    MAX_GROWTH_MULTIPLIER: float = Field(1.5, ge=1)
    BOOSTER_MULTIPLIER: int = Field(50, ge=0)
    MAX_DONOR_BOOSTER: int = Field(25, ge=0)
    MAX_DAILY_ENTITLEMENT: int = Field(112, ge=0)
    ENABLE_GROWTH_MULTIPLIER: bool = True
    ENABLE_DONOR_BOOSTER: bool = True
    REWARD_EXCHANGE_RATE: float = Field(0.001, ge=0, description="Native currency per reward token")

    # Operations
    ALLOW_MANUAL_SNAPSHOTS: bool = False
    SNAPSHOT_OVERDUE_HOURS: float = Field(25, gt=0)
    OUTPUT_DIR: str = Field("./output", description="Directory for output files")
    LOG_LEVEL: str = "INFO"

    @model_validator(mode='after')
    def check_entitlement_cap(self) -> 'Settings':
        if self.MAX_DAILY_ENTITLEMENT < self.BASE_DAILY_AMOUNT:
            raise ValueError("MAX_DAILY_ENTITLEMENT must not be below BASE_DAILY_AMOUNT")
        return self

    @property
    def oracle_parameters(self) -> OracleParameters:
        """Get formula constants as a separate model"""
        return OracleParameters(
            base_daily_amount=self.BASE_DAILY_AMOUNT,
            growth_threshold=self.GROWTH_THRESHOLD,
            growth_increment=self.GROWTH_INCREMENT,
            enable_decay=self.ENABLE_DECAY,
            decay_amount=self.DECAY_AMOUNT,
            max_growth_multiplier=self.MAX_GROWTH_MULTIPLIER,
            booster_multiplier=self.BOOSTER_MULTIPLIER,
            max_donor_booster=self.MAX_DONOR_BOOSTER,
            max_daily_entitlement=self.MAX_DAILY_ENTITLEMENT,
            enable_growth_multiplier=self.ENABLE_GROWTH_MULTIPLIER,
            enable_donor_booster=self.ENABLE_DONOR_BOOSTER,
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True
    )


def load_settings(**overrides) -> Settings:
    """
    Load and validate settings once at startup.

    Raises:
        InvalidConfiguration: If any option is missing or out of range
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise InvalidConfiguration(f"Invalid configuration: {e}") from e
