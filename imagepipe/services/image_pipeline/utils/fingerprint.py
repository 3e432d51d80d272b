# imagepipe/services/image_pipeline/utils/fingerprint.py
"""
Fingerprint builder - stable cache keys for (input, options) pairs.

The key combines a digest of the input with a digest of the canonical option
serialization (set fields only, keys sorted), so option bags built in a
different field order map to the same key.
"""

import hashlib
import json
from typing import Optional

from ....models.process_options_model import OptionsInput, coerce_options
from ....utils.validation_helpers import ImageInput

FINGERPRINT_ALGORITHM = "sha256"


def canonical_options_json(options: OptionsInput) -> str:
    """Serialize options with sorted keys and no unset fields."""
    canonical = coerce_options(options).to_canonical_dict()
    return json.dumps(canonical, sort_keys=True, separators=(",", ":"), default=str)


def digest_input(data: ImageInput, sample_bytes: Optional[int] = None) -> str:
    """
    Digest the input.

    Bytes are hashed in full by default. With sample_bytes set only that many
    leading bytes are hashed, together with the total length; two inputs of
    equal length sharing that prefix then collide. String references are
    hashed as text.
    """
    hasher = hashlib.new(FINGERPRINT_ALGORITHM)

    if isinstance(data, str):
        hasher.update(b"ref:")
        hasher.update(data.encode("utf-8"))
        return hasher.hexdigest()

    payload = bytes(data)
    if sample_bytes is not None and len(payload) > sample_bytes:
        hasher.update(f"sample:{sample_bytes}:{len(payload)}:".encode("ascii"))
        hasher.update(payload[:sample_bytes])
    else:
        hasher.update(b"bytes:")
        hasher.update(payload)
    return hasher.hexdigest()


def build_fingerprint(
    data: ImageInput, options: OptionsInput, sample_bytes: Optional[int] = None
) -> str:
    """
    Build the cache key for a request. Pure function of its arguments.

    Args:
        data: Image bytes or reference string
        options: ProcessOptions or an equivalent mapping
        sample_bytes: Optional prefix length for input hashing

    Returns:
        "<input digest>-<options digest>"
    """
    options_digest = hashlib.new(
        FINGERPRINT_ALGORITHM, canonical_options_json(options).encode("utf-8")
    ).hexdigest()
    return f"{digest_input(data, sample_bytes)}-{options_digest}"
