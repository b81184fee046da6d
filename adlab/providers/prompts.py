# ─────────────────────────────────────────────────────────────────────────────
# Prompt Templates — chat prompts for ad generation and ad inspection
# ─────────────────────────────────────────────────────────────────────────────


from adlab.providers.protocol import CompletionParams, PromptSpec
from adlab.schemas import AdGenerationRequest, AdInspectionRequest

GENERATION_SYSTEM_PROMPT = (
    "You are an expert advertising copywriter specializing in performance marketing."
)
INSPECTION_SYSTEM_PROMPT = (
    "You are a paid media expert specializing in performance ad analysis."
)

VARIATION_COUNT = 3

# ── Output contract sent to the model ────────────────────────────────────────
# Must stay in sync with AdsPayload / AdAnalysis in schemas.py.

_GENERATION_OUTPUT = (
    'Output a JSON object {"ads": [...]} where each ad has: '
    "type, headline, primary_text, cta, visual_suggestion"
)

_INSPECTION_OUTPUT = """{
  "grade": string,
  "headlineGrade": string,
  "bodyGrade": string,
  "ctaGrade": string,
  "summary": string,
  "suggestions": string[],
  "predictedCTR": string,
  "attentionScore": number,
  "complianceCheck": string,
  "rewrite"?: string
}"""


def build_generation_prompt(
    request: AdGenerationRequest, params: CompletionParams
) -> PromptSpec:
    """Prompt for VARIATION_COUNT distinct ad variations.

    Every validated field is interpolated; competitors only when given.
    """
    lines = [
        f"As a Meta ads expert, generate {VARIATION_COUNT} {request.ad_format} "
        "ad variations with these specifications:",
        "",
        f"Industry: {request.industry}",
        f"Target: {request.target_audience}",
        f"Goal: {request.goal}",
        f"USP: {request.unique_selling_point}",
        f"Context: {request.context_description}",
        f"Voice: {request.brand_voice}",
        f"Emotion: {request.key_emotion}",
        f"CTA: {request.preferred_cta}",
        f"Visual: {request.visual_direction}",
    ]
    if request.competitors:
        lines.append(f"Competitors: {request.competitors}")
    lines += [
        "",
        "Requirements:",
        f"1. Strict compliance with {request.industry} advertising policies",
        "2. Include implied social proof",
        f"3. Use {request.key_emotion} psychological triggers",
        f"4. {_GENERATION_OUTPUT}",
        "5. Each variation should have distinct positioning",
    ]
    return PromptSpec(system=GENERATION_SYSTEM_PROMPT, user="\n".join(lines), params=params)


def build_inspection_prompt(
    request: AdInspectionRequest, params: CompletionParams
) -> PromptSpec:
    """Prompt grading headline/body/CTA/offer plus compliance and CTR outlook."""
    lines = [
        f"As a senior {request.ad_type} ad consultant, analyze this ad:",
        "",
        "Ad Components:",
        f"- Headline: {request.headline}",
        f"- Body: {request.body}",
        f"- CTA: {request.cta}",
        f"- Offer: {request.offer_description}",
        f"- Brand: {request.website_or_brand or 'Not specified'}",
        f"- Industry: {request.industry}",
        f"- Platform: {request.ad_type}",
        "",
        "Evaluation Framework:",
        "1. Grade each component (A-F): headline 20%, body 40%, CTA 20%, offer 20%",
        f"2. Compliance: {request.industry} regulations, {request.ad_type} platform "
        "policies, truth-in-advertising standards",
        "3. Performance: predicted CTR (Low/Medium/High), conversion likelihood, "
        "attention score (1-10)",
        "",
        "Required Output (JSON):",
        _INSPECTION_OUTPUT,
    ]
    return PromptSpec(system=INSPECTION_SYSTEM_PROMPT, user="\n".join(lines), params=params)
