"""Deterministic cache keys for derived artifacts.

The key covers everything that can change the bytes served for an image:

- owner id
- image identifier
- normalized accept header
- requested extension (can be empty)
- transformation chain (can be empty)

The fields are encoded as a JSON array before hashing, so no two distinct
inputs share a key. Changing how these values are combined orphans every
entry already on disk.
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

from pixelpipe.core.request import ImageRequest

ACCEPT_DELIMITER = ","


def normalize_accept(accept: Optional[str]) -> str:
    """Reduce an Accept header to the values that can change the served image.

    Values are trimmed, parameters after ``;`` are dropped, only ``*/...``
    wildcards and ``image/...`` types are kept, and the result is sorted so the
    order the client listed them in does not matter.

    Example:
        >>> normalize_accept("text/html, image/png;q=0.9, */*")
        '*/*,image/png'
    """
    if accept is None:
        accept = "*/*"

    values = []
    for value in accept.split(","):
        value = value.split(";", 1)[0].strip()
        if value.startswith("*/") or value.startswith("image/"):
            values.append(value)

    return ACCEPT_DELIMITER.join(sorted(values))


@dataclass(frozen=True)
class FingerprintInput:
    """The request attributes a cached artifact is keyed on.

    Attributes:
        owner_id: The account that owns the image.
        asset_id: The identifier of the original image.
        accept: The normalized accept set, see ``normalize_accept``.
        extension: The requested output extension.
        transformations: The transformation chain, order preserved.
    """

    owner_id: str
    asset_id: str
    accept: str = "*/*"
    extension: Optional[str] = None
    transformations: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        validate_identifier("owner_id", self.owner_id)
        validate_identifier("asset_id", self.asset_id)
        # Accept plain lists for convenience, keep the frozen instance hashable
        object.__setattr__(self, "transformations", tuple(self.transformations))

    @classmethod
    def create(
        cls,
        owner_id: str,
        asset_id: str,
        accept: Optional[str] = None,
        extension: Optional[str] = None,
        transformations: Optional[Iterable[str]] = None,
    ) -> "FingerprintInput":
        """Builds an input from a raw Accept header value."""
        return cls(
            owner_id=owner_id,
            asset_id=asset_id,
            accept=normalize_accept(accept),
            extension=extension or None,
            transformations=tuple(transformations or ()),
        )

    @classmethod
    def from_request(cls, request: ImageRequest) -> "FingerprintInput":
        return cls.create(
            owner_id=request.owner_id,
            asset_id=request.image_identifier,
            accept=request.accept,
            extension=request.extension,
            transformations=request.transformations,
        )


def validate_identifier(name: str, value: str) -> None:
    """Make sure an id can be used as a directory name in the sharded layout.

    Raises:
        ValueError: If the value is empty or contains path separators.
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")
    if "/" in value or "\\" in value or value in (".", "..") or "\x00" in value:
        raise ValueError(f"{name} contains characters that are not allowed in a path: {value!r}")


def encode_key(fingerprint_input: FingerprintInput) -> str:
    """Serializes the fields into the string the fingerprint is computed over.

    Fields are encoded as a JSON array so that every field keeps its
    boundaries: characters cannot move from the accept set into the
    extension, or from one transformation into the next, without changing
    the key.

    Example:
        >>> encode_key(FingerprintInput("abc", "d41d", "*/*,image/png", "jpg"))
        '["abc","d41d","*/*,image/png","jpg",[]]'
    """
    return json.dumps(
        [
            fingerprint_input.owner_id,
            fingerprint_input.asset_id,
            fingerprint_input.accept,
            fingerprint_input.extension or "",
            list(fingerprint_input.transformations),
        ],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_fingerprint(fingerprint_input: FingerprintInput) -> str:
    """Returns the 128-bit hex digest identifying a derived artifact."""
    return hashlib.md5(encode_key(fingerprint_input).encode("utf-8")).hexdigest()
