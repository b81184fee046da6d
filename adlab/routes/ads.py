# ─────────────────────────────────────────────────────────────────────────────
# POST /generate, POST /inspect — ad copy endpoints (THIN)
# ─────────────────────────────────────────────────────────────────────────────
# The body is read raw so that malformed JSON and schema violations are
# reported by the pipeline, after the quota check, in one error shape.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from adlab.dependencies import get_ad_pipeline
from adlab.exceptions import render_outcome
from adlab.rate_limit import client_address, http_rate_limit, limiter
from adlab.services.pipeline import AdPipeline

router = APIRouter()


@router.post("/generate")
@limiter.limit(http_rate_limit)
async def generate(
    request: Request,
    pipeline: AdPipeline = Depends(get_ad_pipeline),
) -> JSONResponse:
    """Generate ad variations for a campaign brief.

    Metered per client (see services/quota.py). Identical briefs are served
    from the cache without touching the provider.
    """
    outcome = await pipeline.generate(client_address(request), await request.body())
    return render_outcome(outcome)


@router.post("/inspect")
@limiter.limit(http_rate_limit)
async def inspect(
    request: Request,
    pipeline: AdPipeline = Depends(get_ad_pipeline),
) -> JSONResponse:
    """Grade an existing ad and suggest improvements."""
    outcome = await pipeline.inspect(client_address(request), await request.body())
    return render_outcome(outcome)
