from decimal import Decimal

from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str

class PreviewRules(BaseModel):
    max_chars: int = Field(gt=0)
    fragment_chars: int = Field(gt=0)

class PricingRules(BaseModel):
    default_amount: Decimal = Field(gt=0)
    currency: str
    asset: str
    asset_decimals: int = Field(ge=0)
    network: str

class PaymentRules(BaseModel):
    challenge_ttl_seconds: int = Field(gt=0)
    verify_timeout_seconds: float = Field(gt=0)
    require_payer_match: bool = True

class StorageRules(BaseModel):
    epochs: int = Field(gt=0)
    max_content_bytes: int = Field(gt=0)

class ContentRules(BaseModel):
    title_max: int = Field(gt=0)
    description_max: int = Field(gt=0)
    tags_max: int = Field(ge=0)

class BackupsRules(BaseModel):
    backup_dir_name: str
    retention_count: int = Field(gt=0)

class OpsRules(BaseModel):
    required_env: list[str]
    backups: BackupsRules

class Rules(BaseModel):
    project: ProjectRules
    preview: PreviewRules
    pricing: PricingRules
    payment: PaymentRules
    storage: StorageRules
    content: ContentRules
    ops: OpsRules
