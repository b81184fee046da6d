# Deterministic cache keys from validated requests.
#
# Canonical form: dump by alias, drop absent optionals, sort keys, compact
# separators. The default base64 encoding is reversible; it keeps content out
# of plain-text key listings but is not a security property. Set
# CACHE_KEY_DIGEST=true for one-way sha256 keys.

import base64
import hashlib
import json

from pydantic import BaseModel

GENERATION_NAMESPACE = "gen-ad"
INSPECTION_NAMESPACE = "inspect"


def canonical_json(request: BaseModel) -> str:
    """Stable serialization: identical validated input → identical string."""
    payload = request.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def derive_key(request: BaseModel, namespace: str, *, digest: bool = False) -> str:
    """Cache key for ``request`` inside ``namespace``."""
    canonical = canonical_json(request).encode()
    if digest:
        encoded = hashlib.sha256(canonical).hexdigest()
    else:
        encoded = base64.urlsafe_b64encode(canonical).decode("ascii")
    return f"{namespace}:{encoded}"
