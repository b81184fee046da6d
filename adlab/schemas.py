# ─────────────────────────────────────────────────────────────────────────────
# Pydantic v2 Request / Provider / Response Schemas
# ─────────────────────────────────────────────────────────────────────────────
# Wire format is camelCase (the front-end's names); Python code uses
# snake_case attributes through alias_generator=to_camel.
# ─────────────────────────────────────────────────────────────────────────────


from enum import StrEnum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BrandVoice(StrEnum):
    professional = "Professional"
    friendly = "Friendly"
    witty = "Witty"
    urgent = "Urgent"
    inspirational = "Inspirational"


class KeyEmotion(StrEnum):
    fomo = "FOMO"
    trust = "Trust"
    excitement = "Excitement"
    curiosity = "Curiosity"
    anger_solve_pain = "Anger/Solve Pain"


class AdFormat(StrEnum):
    single_image = "Single Image"
    carousel = "Carousel"
    video = "Video"
    story = "Story"


class Industry(StrEnum):
    """Shared by both endpoints."""

    general = "General"
    health = "Health"
    finance = "Finance"
    ecommerce = "E-commerce"
    saas = "SaaS"
    real_estate = "Real Estate"
    other = "Other"


class CallToAction(StrEnum):
    shop_now = "Shop Now"
    learn_more = "Learn More"
    get_offer = "Get Offer"
    sign_up = "Sign Up"
    book_now = "Book Now"
    claim_discount = "Claim Discount"


class VisualDirection(StrEnum):
    lifestyle = "Lifestyle"
    product_close_up = "Product Close-Up"
    before_after = "Before/After"
    user_generated = "User-Generated"
    infographic = "Infographic"


class AdPlatform(StrEnum):
    facebook = "facebook"
    instagram = "instagram"
    google_search = "google-search"
    google_display = "google-display"


class _WireModel(BaseModel):
    """camelCase on the wire, unknown keys dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


# ── Requests ─────────────────────────────────────────────────────────────────


class AdGenerationRequest(_WireModel):
    """Incoming POST /generate body."""

    target_audience: str = Field(..., min_length=10, max_length=100)
    goal: str = Field(..., min_length=10, max_length=100)
    unique_selling_point: str = Field(..., min_length=10, max_length=200)
    context_description: str = Field(..., min_length=20, max_length=500)
    brand_voice: BrandVoice
    key_emotion: KeyEmotion
    competitors: str | None = Field(None, max_length=100)
    ad_format: AdFormat
    industry: Industry
    preferred_cta: CallToAction = Field(..., alias="preferredCTA")
    visual_direction: VisualDirection


class AdInspectionRequest(_WireModel):
    """Incoming POST /inspect body."""

    headline: str = Field(..., min_length=5, max_length=120)
    body: str = Field(..., min_length=10, max_length=500)
    cta: str = Field(..., min_length=2, max_length=50)
    offer_description: str = Field(..., min_length=10, max_length=500)
    website_or_brand: str | None = Field(None, max_length=50)
    ad_type: AdPlatform
    industry: Industry


# ── Provider payload shapes ──────────────────────────────────────────────────
# Validated before anything is cached. Only the mandatory keys are checked;
# everything else the model returns is passed through as-is.


def _present(value: Any) -> Any:
    """Reject null, false, zero and the empty string. Empty lists pass."""
    if value is None or value is False or value == "" or (
        isinstance(value, int | float) and value == 0
    ):
        raise ValueError("must be present and non-empty")
    return value


Present = Annotated[Any, AfterValidator(_present)]


class AdVariation(BaseModel):
    """One generated ad. The model is asked for these keys but not trusted to
    return all of them, nor to return them as strings."""

    model_config = ConfigDict(extra="allow")

    type: Any = None
    headline: Any = None
    primary_text: Any = None
    cta: Any = None
    visual_suggestion: Any = None


class AdsPayload(BaseModel):
    """Generation result: at least one variation."""

    ads: list[AdVariation] = Field(..., min_length=1)


class AdAnalysis(BaseModel):
    """Inspection result: grade and suggestions are mandatory."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    grade: Present
    suggestions: Present
    headline_grade: Any = Field(None, alias="headlineGrade")
    body_grade: Any = Field(None, alias="bodyGrade")
    cta_grade: Any = Field(None, alias="ctaGrade")
    summary: Any = None
    predicted_ctr: Any = Field(None, alias="predictedCTR")
    attention_score: Any = Field(None, alias="attentionScore")
    compliance_check: Any = Field(None, alias="complianceCheck")
    rewrite: Any = None


# ── Ambient responses ────────────────────────────────────────────────────────


class LivenessResponse(BaseModel):
    """Liveness probe — minimal, near-zero cost."""

    status: str = "ok"


class ReadinessResponse(BaseModel):
    """Readiness probe — can the instance reach its store?"""

    status: str  # "ready" or "not_ready"
    store_backend: str
    store_connected: bool
